"""Token verification, provisioning and role grants."""
import time
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from app.core.errors import AuthenticationError, ValidationError
from app.models import RoleGrant
from app.services import auth
from app.services.auth import Principal

PROJECT_ID = "desi-test"
KID = "test-key-1"


@pytest.fixture(scope="module")
def signing_keys():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = KID
    return private_pem, public_jwk


def _token(private_pem, **overrides):
    now = int(time.time())
    claims = {
        "iss": f"https://securetoken.google.com/{PROJECT_ID}",
        "aud": PROJECT_ID,
        "sub": "firebase-uid-1",
        "email": "ravi@example.com",
        "name": "Ravi Kumar",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": KID})


@pytest.fixture
def jwks(signing_keys):
    with patch("app.services.auth.get_jwks", return_value=[signing_keys[1]]) as mock_jwks:
        yield mock_jwks


def test_valid_token(signing_keys, jwks):
    principal = auth.verify_token(_token(signing_keys[0]))
    assert principal == Principal(uid="firebase-uid-1", email="ravi@example.com", display_name="Ravi Kumar")


@pytest.mark.parametrize("token", [None, "", "null", "undefined", "not-a-jwt"])
def test_malformed_token(token):
    with pytest.raises(AuthenticationError):
        auth.verify_token(token)


def test_expired_token(signing_keys, jwks):
    expired = _token(signing_keys[0], iat=int(time.time()) - 7200, exp=int(time.time()) - 3600)
    with pytest.raises(AuthenticationError):
        auth.verify_token(expired)


def test_wrong_audience(signing_keys, jwks):
    with pytest.raises(AuthenticationError):
        auth.verify_token(_token(signing_keys[0], aud="someone-else"))


def test_wrong_issuer(signing_keys, jwks):
    with pytest.raises(AuthenticationError):
        auth.verify_token(_token(signing_keys[0], iss="https://evil.example.com"))


def test_unknown_signing_key(signing_keys):
    with patch("app.services.auth.get_jwks", return_value=[]):
        with pytest.raises(AuthenticationError):
            auth.verify_token(_token(signing_keys[0]))


def test_bearer_token_parsing():
    assert auth.bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"
    with pytest.raises(AuthenticationError):
        auth.bearer_token("Basic abc")
    with pytest.raises(AuthenticationError):
        auth.bearer_token(None)


def test_provision_on_first_sight(db):
    principal = Principal(uid="u-1", email="ravi@example.com", display_name="Ravi Kumar")

    user, created = auth.resolve_or_provision(db, principal, bot_name="Chotu")
    again, created_again = auth.resolve_or_provision(db, principal, bot_name="Ignored")

    assert created and not created_again
    assert again.id == user.id
    assert user.username == "ravi_kumar"
    assert user.bot_name == "Chotu"
    assert user.preferred_language == "english"
    assert not user.is_premium


def test_usernames_stay_unique(db):
    first, _ = auth.resolve_or_provision(db, Principal(uid="abc123xyz", email="a@example.com", display_name="Ravi"))
    second, _ = auth.resolve_or_provision(db, Principal(uid="def456uvw", email="b@example.com", display_name="Ravi"))

    assert first.username == "ravi"
    assert second.username != first.username
    assert second.username.startswith("ravi_")


def test_provision_needs_an_email(db):
    with pytest.raises(ValidationError):
        auth.resolve_or_provision(db, Principal(uid="no-email"))


def test_grant_owner_role(db, make_user):
    user = make_user()

    auth.grant_role(db, user, "owner", granted_by="cli:ops")

    assert user.is_owner
    grant = db.query(RoleGrant).filter(RoleGrant.user_id == user.id).one()
    assert grant.granted_by == "cli:ops"


def test_unknown_role_is_rejected(db, make_user):
    with pytest.raises(ValidationError):
        auth.grant_role(db, make_user(), "admin", granted_by="cli:ops")
