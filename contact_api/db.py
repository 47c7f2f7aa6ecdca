"""SQLAlchemy 2.x async engine setup for the sql store backend.

Engines are created lazily so the json backend never needs a database
driver installed.
"""

from __future__ import annotations

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import StoreSettings


def create_engine(config: StoreSettings) -> AsyncEngine:
    return create_async_engine(config.url, echo=config.echo, future=True)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


def redact_url(url: str | URL) -> str:
    """Database URL with the password masked, safe for logs."""
    return make_url(url).render_as_string(hide_password=True)
