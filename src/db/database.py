"""Database engine / session factory"""

from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.db.schema import Base


def make_session_factory(database_url: str, echo: bool = False) -> sessionmaker[Session]:
    """Create the engine, ensure all tables exist and return a session factory bound to it."""
    if database_url.startswith("sqlite"):
        # Sessions are opened from the request worker threads and the sweeper thread.
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
    else:
        kwargs = {}
    engine = create_engine(database_url, echo=echo, **kwargs)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
