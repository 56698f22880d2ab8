"""
Database connection and session management.
"""
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine, SQLModel, Session
from keyhub.core.settings import settings


def build_engine(database_url: str, echo: bool = False):
    """Create an engine for the key store, tuned for SQLite when needed."""
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            return create_engine(
                database_url,
                echo=echo,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        sqlite_engine = create_engine(database_url, echo=echo, connect_args=connect_args)

        @event.listens_for(sqlite_engine, "connect")
        def _enable_wal(dbapi_connection, connection_record):
            # Readers do not block the writer under WAL
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        return sqlite_engine

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=300,  # Recycle connections every 5 minutes
    )


# Create database engine
engine = build_engine(settings.database_url, echo=False)


def create_db_and_tables(bind=None):
    """Create database tables."""
    # Import models so their metadata is registered
    from keyhub.db.models import SubscriptionKey, AdminUser  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Dependency to get database session."""
    with Session(engine) as session:
        yield session
