"""
Firebase Authentication

Sign-up, sign-in and sign-out happen in the Firebase client SDK; the API only
verifies the ID tokens it issues and resolves household members' names.

Demo mode: an ``X-Demo-User-Id`` header stands in for a token and yields the
pseudo user ``demo_<id>``.
"""

import re
from dataclasses import dataclass
from typing import Optional

import firebase_admin
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth

from app.core import config
from app.core.logging import get_logger

logger = get_logger("fintrack.auth")

bearer_scheme = HTTPBearer(auto_error=False)

DEMO_USER_PREFIX = "demo_"
DEMO_EMAIL_DOMAIN = "demo.fintrack.local"
DEMO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

# Token errors that map to a specific 401 message; checked in order
_TOKEN_ERRORS = (
    (auth.ExpiredIdTokenError, "Authentication token has expired"),
    (auth.RevokedIdTokenError, "Authentication token has been revoked"),
    (auth.UserDisabledError, "This account has been disabled"),
    (auth.InvalidIdTokenError, "Invalid authentication token"),
)


def _firebase_app() -> firebase_admin.App:
    """Initialize the default Firebase app on first use."""
    if not firebase_admin._apps:
        return firebase_admin.initialize_app()
    return firebase_admin.get_app()


@dataclass
class FirebaseUser:
    """The caller behind a request."""

    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    email_verified: bool = False
    is_demo: bool = False

    @classmethod
    def from_token(cls, claims: dict) -> "FirebaseUser":
        return cls(
            uid=claims["uid"],
            email=claims.get("email"),
            name=claims.get("name"),
            picture=claims.get("picture"),
            email_verified=claims.get("email_verified", False),
        )

    @classmethod
    def demo_user(cls, demo_id: str) -> "FirebaseUser":
        email, name = _demo_details(demo_id)
        return cls(uid=f"{DEMO_USER_PREFIX}{demo_id}", email=email, name=name, is_demo=True)


def _demo_details(demo_id: str) -> tuple[str, str]:
    return (f"{demo_id}@{DEMO_EMAIL_DOMAIN}", f"Demo User ({demo_id})")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _demo_user(demo_id: str) -> FirebaseUser:
    if not DEMO_ID_PATTERN.match(demo_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Demo user id may only contain letters, digits, '-' and '_' (max 64)",
        )
    return FirebaseUser.demo_user(demo_id)


def verify_token(token: str) -> FirebaseUser:
    """Verify a Firebase ID token; raises 401 with the reason it was rejected."""
    try:
        claims = auth.verify_id_token(token, app=_firebase_app(), check_revoked=config.FIREBASE_CHECK_REVOKED)
    except Exception as e:
        for error_type, detail in _TOKEN_ERRORS:
            if isinstance(e, error_type):
                raise _unauthorized(detail)
        logger.warning(f"Token verification failed: {e}")
        raise _unauthorized(f"Authentication failed: {e}")
    return FirebaseUser.from_token(claims)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_demo_user_id: Optional[str] = Header(None, alias="X-Demo-User-Id"),
) -> FirebaseUser:
    """Dependency returning the authenticated caller or rejecting with 401."""
    if config.DEMO_MODE_ENABLED and x_demo_user_id:
        return _demo_user(x_demo_user_id)

    if credentials is None:
        raise _unauthorized("Missing authentication token")
    return verify_token(credentials.credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_demo_user_id: Optional[str] = Header(None, alias="X-Demo-User-Id"),
) -> Optional[FirebaseUser]:
    """Like ``get_current_user`` but anonymous callers get None."""
    if config.DEMO_MODE_ENABLED and x_demo_user_id:
        return _demo_user(x_demo_user_id)
    if credentials is None:
        return None

    try:
        return verify_token(credentials.credentials)
    except HTTPException as e:
        logger.debug(f"Treating caller as anonymous: {e.detail}")
        return None


def get_user_details(user_id: str) -> tuple[Optional[str], Optional[str]]:
    """
    Email and display name of a household member.

    Demo users are synthesised; users unknown to Firebase Auth yield
    (None, None) so a stale membership never breaks the member list.
    """
    if user_id.startswith(DEMO_USER_PREFIX):
        return _demo_details(user_id[len(DEMO_USER_PREFIX):])

    try:
        record = auth.get_user(user_id, app=_firebase_app())
    except auth.UserNotFoundError:
        logger.warning(f"Household member {user_id} no longer exists in Firebase Auth")
        return (None, None)
    except Exception as e:
        logger.error(f"Error fetching user details for {user_id}: {e}")
        return (None, None)
    return (record.email, record.display_name)
