"""Database session management for the automation ledger."""

from collections.abc import Generator

from sqlmodel import Session, SQLModel, create_engine

from eventlane.config import get_settings

settings = get_settings()

# Convert postgresql:// to postgresql+psycopg:// for psycopg v3 driver
database_url = settings.DATABASE_URL or "sqlite:///./eventlane.db"
if database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+psycopg://", 1)

engine = create_engine(
    database_url,
    echo=False,
    pool_pre_ping=True,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session with automatic cleanup."""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create all tables registered on the SQLModel metadata."""
    # Import models to register them with SQLModel
    import eventlane.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
