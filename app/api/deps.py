"""Shared route dependencies: authentication, current user, premium gate, thread offload."""
import asyncio
from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from app.core.errors import PremiumRequiredError
from app.database import get_db
from app.models import User
from app.services.auth import Principal, bearer_token, resolve_or_provision, verify_token
from app.services.quota import is_currently_premium, refresh_premium_status


def get_principal(authorization: Optional[str] = Header(None)) -> Principal:
    """Verified identity from the bearer token. Sync so FastAPI runs the JWKS fetch in its pool."""
    return verify_token(bearer_token(authorization))


def get_current_user(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> User:
    """Local user for the token, provisioned on first sight, with expired trials cleared."""
    user, _ = resolve_or_provision(db, principal)
    return refresh_premium_status(db, user)


def require_premium(user: User = Depends(get_current_user)) -> User:
    if not is_currently_premium(user):
        raise PremiumRequiredError()
    return user


async def run_blocking(func, *args, **kwargs):
    """
    Run a sync service call in the thread pool.

    The call always runs to completion before the request's DB session is closed. Provider
    calls are bounded by the Gemini client's own timeout (llm_timeout_seconds).
    """
    return await asyncio.to_thread(func, *args, **kwargs)
