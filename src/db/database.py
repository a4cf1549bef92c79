"""Create the database engine and session factory"""

from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import Settings
from src.db.schema import Base


def create_db_engine(settings: Settings) -> Engine:
    """Engine for the configured database. All tables are created if missing."""
    kwargs: dict = {"echo": settings.DATABASE_ECHO}
    if settings.DATABASE_URL.startswith("sqlite"):
        # request handlers run in multiple threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in settings.DATABASE_URL:
            # every connection must see the same in-memory database
            kwargs["poolclass"] = StaticPool
    engine = create_engine(settings.DATABASE_URL, **kwargs)

    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
