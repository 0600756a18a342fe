"""Account endpoints: first-login registration and the current profile."""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from app.api.deps import get_current_user, get_principal
from app.database import get_db
from app.models import User
from app.schemas.user import RegisterRequest, UserResponse
from app.services.auth import Principal, resolve_or_provision
from app.services.quota import refresh_premium_status

router = APIRouter()


@router.post("/register", response_model=UserResponse)
def register(
    request: RegisterRequest,
    response: Response,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Create the local account for a verified identity. Idempotent: an existing account is returned."""
    user, created = resolve_or_provision(
        db,
        principal,
        email=request.email,
        display_name=request.display_name,
        bot_name=request.bot_name,
        preferred_language=request.preferred_language,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return UserResponse.from_user(refresh_premium_status(db, user))


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse.from_user(user)
