"""
Main entry point for the subscription key API.
"""
import uvicorn
from keyhub.core.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "keyhub.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )
