# ============================================================================
# Authentication Helper
# ============================================================================

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Header, HTTPException
from firebase_admin import auth as firebase_auth

from .clients import get_firebase_app
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[str], Dict[str, Any]]


def get_token_verifier(settings: Settings = Depends(get_settings)) -> TokenVerifier:
    """Returns a callable that decodes a Firebase ID token."""

    def verify(token: str) -> Dict[str, Any]:
        # Firebase is only initialized once a token actually needs checking
        app = get_firebase_app(settings)
        return firebase_auth.verify_id_token(token, app=app)

    return verify


def verify_firebase_token(authorization: Optional[str], verify: TokenVerifier) -> Dict[str, Any]:
    """Validate a Firebase bearer token and return the decoded claims."""
    if not authorization:
        raise HTTPException(401, detail="Missing authorization header")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise HTTPException(401, detail="Malformed authorization header")

    try:
        decoded = verify(parts[1])
    except Exception as e:
        logger.warning("Firebase token rejected: %s", e.__class__.__name__)
        raise HTTPException(401, detail="Invalid or expired token") from e

    if not decoded:
        raise HTTPException(401, detail="Invalid or expired token")
    return decoded


def require_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    verify: TokenVerifier = Depends(get_token_verifier),
) -> Optional[Dict[str, Any]]:
    """Route dependency: decoded token, or None when auth is switched off."""
    if not settings.firebase_auth_required:
        return None
    return verify_firebase_token(authorization, verify)
