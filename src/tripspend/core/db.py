from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker

from tripspend.core.config import settings


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True, "echo": settings.database_echo}
    if make_url(database_url).get_backend_name() == "sqlite":
        # request handlers and the test client share the file database across threads
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# Services flush explicitly when they need generated ids before commit.
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def db_session() -> Iterator[Session]:
    """One session per request. Services commit; whatever is left open is rolled back."""
    with SessionLocal() as session:
        yield session
