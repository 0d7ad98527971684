"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from wire_recon.config import Settings
from wire_recon.ledger import LedgerBackend
from wire_recon.services.errors import ValidationError


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Routes commit explicitly; anything left uncommitted is rolled back when
    the session closes.
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_ledger(request: Request) -> LedgerBackend:
    """Ledger backend shared by all requests."""
    return request.app.state.ledger


async def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None
) -> str:
    """Extract the acting user from header."""
    if not x_user_id or not x_user_id.strip():
        raise ValidationError("X-User-ID header is required")
    return x_user_id.strip()


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Ledger = Annotated[LedgerBackend, Depends(get_ledger)]
CurrentUser = Annotated[str, Depends(get_current_user)]
