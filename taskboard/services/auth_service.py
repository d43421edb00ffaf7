import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException

from ..core.config import Config
from . import supabase_service


logger = logging.getLogger(__name__)

DEFAULT_ROLE = "User"


@dataclass(frozen=True)
class Session:
    """The authenticated caller for a request."""

    user_id: str
    email: Optional[str]
    role: str = DEFAULT_ROLE
    access_token: str = ""


def send_magic_link(email: str) -> None:
    """Ask Supabase to email a one-time sign-in link to ``email``."""
    try:
        supabase = supabase_service.get_anon_client()
        supabase.auth.sign_in_with_otp({
            "email": email,
            "options": {"email_redirect_to": Config.SITE_URL},
        })
    except Exception as e:
        logger.error(f"Failed to send magic link to {email}: {e}")
        raise HTTPException(status_code=502, detail="Failed to send magic link")


def sign_out(access_token: str) -> None:
    try:
        supabase = supabase_service.get_client()
        supabase.auth.admin.sign_out(access_token)
    except Exception as e:
        logger.warning(f"Failed to revoke session: {e}")
        raise HTTPException(status_code=502, detail="Failed to sign out")


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Login required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return token.strip()


def resolve_session(access_token: str) -> Session:
    try:
        supabase = supabase_service.get_client()
        response = supabase.auth.get_user(access_token)
    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    user = getattr(response, "user", None)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    profile = supabase_service.get_profile(user.id) or {}
    return Session(
        user_id=user.id,
        email=getattr(user, "email", None),
        role=profile.get("role") or DEFAULT_ROLE,
        access_token=access_token,
    )


def get_current_session(authorization: Optional[str] = Header(None)) -> Session:
    """FastAPI dependency resolving the ``Authorization: Bearer`` token."""
    return resolve_session(_bearer_token(authorization))
