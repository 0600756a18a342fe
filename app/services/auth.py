"""
Firebase identity: ID token verification and local user provisioning.

Tokens are RS256 JWTs signed with Google's securetoken keys. Audience is the Firebase
project id and the issuer is https://securetoken.google.com/<project id>.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import requests
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.errors import AuthenticationError, UpstreamProviderError, ValidationError
from app.models import RoleGrant, User
from app.models.user import DEFAULT_BOT_NAME, DEFAULT_LANGUAGE, OWNER_ROLE
from app.utils.text import slugify

logger = logging.getLogger(__name__)

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"

_JWKS_CACHE: Optional[Dict[str, Any]] = None
_JWKS_CACHE_TS: float = 0.0


@dataclass
class Principal:
    """Verified identity claims."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None


def get_jwks(force_refresh: bool = False) -> List[Dict[str, Any]]:
    """Fetch Google's signing keys, cached for jwks_cache_ttl seconds."""
    global _JWKS_CACHE, _JWKS_CACHE_TS
    now = time.time()
    if (
        _JWKS_CACHE is not None
        and not force_refresh
        and (now - _JWKS_CACHE_TS) < settings.jwks_cache_ttl
    ):
        return _JWKS_CACHE.get("keys", [])
    try:
        response = requests.get(settings.firebase_jwks_url, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        _JWKS_CACHE = data
        _JWKS_CACHE_TS = now
        logger.info(f"Fetched JWKS with {len(data.get('keys', []))} keys")
        return data.get("keys", [])
    except requests.RequestException as e:
        # Serve stale keys rather than locking everyone out
        if _JWKS_CACHE is not None:
            logger.warning(f"JWKS refresh failed, using cached keys: {e}")
            return _JWKS_CACHE.get("keys", [])
        logger.error(f"JWKS fetch failed: {e}")
        raise UpstreamProviderError("Unable to reach the identity provider") from e


def _signing_key(token: str) -> Dict[str, Any]:
    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except JWTError as e:
        raise AuthenticationError("Invalid token") from e
    for refresh in (False, True):
        for key in get_jwks(force_refresh=refresh):
            if key.get("kid") == kid:
                return key
    raise AuthenticationError("Invalid token: unknown signing key")


def verify_token(token: Optional[str]) -> Principal:
    """
    Verify a Firebase ID token and return its identity claims.

    Raises:
        AuthenticationError: missing, malformed, expired or mis-signed token
    """
    if not token or token.lower() in ("null", "undefined", "none"):
        raise AuthenticationError("Unauthorized")
    if token.count(".") != 2:
        raise AuthenticationError("Invalid token format")
    if not settings.firebase_project_id:
        logger.error("FIREBASE_PROJECT_ID is not configured; rejecting token")
        raise AuthenticationError("Authentication is not configured")

    key = _signing_key(token)
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=["RS256"],
            audience=settings.firebase_project_id,
            issuer=FIREBASE_ISSUER_PREFIX + settings.firebase_project_id,
        )
    except JWTError as e:
        logger.info(f"Token rejected: {e}")
        raise AuthenticationError("Invalid token") from e

    uid = claims.get("sub") or claims.get("user_id")
    if not uid:
        raise AuthenticationError("Invalid token: missing subject")
    return Principal(uid=uid, email=claims.get("email"), display_name=claims.get("name"))


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Unauthorized")
    return authorization[len("Bearer "):].strip()


def get_user_by_uid(db: Session, uid: str) -> Optional[User]:
    return db.query(User).filter(User.firebase_id == uid).first()


def _unique_username(db: Session, base: str, uid: str) -> str:
    base = base or "user"
    candidates = [base, f"{base}_{slugify(uid[:6]) or 'x'}"]
    candidates += [f"{base}_{n}" for n in range(2, 100)]
    for candidate in candidates:
        if not db.query(User.id).filter(User.username == candidate).first():
            return candidate
    return f"{base}_{slugify(uid)}"


def resolve_or_provision(
    db: Session,
    principal: Principal,
    email: Optional[str] = None,
    display_name: Optional[str] = None,
    bot_name: Optional[str] = None,
    preferred_language: Optional[str] = None,
) -> Tuple[User, bool]:
    """
    Look the user up by uid, creating the local row on first sight.

    Returns (user, created). Profile arguments only apply to a newly created row.
    """
    user = get_user_by_uid(db, principal.uid)
    if user:
        return user, False

    email = principal.email or email
    if not email:
        raise ValidationError("An email address is required to create an account")
    display_name = display_name or principal.display_name or email.split("@")[0]

    user = User(
        firebase_id=principal.uid,
        email=email,
        username=_unique_username(db, slugify(display_name), principal.uid),
        display_name=display_name,
        bot_name=bot_name or DEFAULT_BOT_NAME,
        preferred_language=preferred_language or DEFAULT_LANGUAGE,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent first request provisioned the same uid
        db.rollback()
        existing = get_user_by_uid(db, principal.uid)
        if existing:
            return existing, False
        raise ValidationError("An account with this email or username already exists")
    db.refresh(user)
    logger.info(f"Provisioned user {user.id} ({user.username}) for uid {principal.uid}")
    return user, True


def grant_role(db: Session, user: User, role: str, granted_by: str) -> RoleGrant:
    """Record an elevated role. Only the owner role exists today."""
    if role != OWNER_ROLE:
        raise ValidationError(f"Unknown role: {role}")
    grant = RoleGrant(user_id=user.id, role=role, granted_by=granted_by)
    user.is_owner = True
    db.add(grant)
    db.commit()
    db.refresh(grant)
    logger.info(f"Granted role {role} to user {user.id} (by {granted_by})")
    return grant
