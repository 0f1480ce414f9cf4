"""
Shared-secret authentication

Every /api route depends on ``require_token``. The token is read from the
``X-Token`` header or from ``Authorization: Bearer <token>`` and compared
in constant time against ``settings.AUTH_TOKEN``.
"""

import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import Request

from cobbler.utils.config import settings
from cobbler.utils.errors import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

ADMIN_USER: Dict[str, Any] = {"id": 1, "username": "admin"}


def extract_token(request: Request) -> Optional[str]:
    token = request.headers.get("X-Token")
    if token:
        return token.strip()
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip()
    return None


def require_token(request: Request) -> Dict[str, Any]:
    """
    FastAPI dependency: authenticate the request and attach the user

    Raises:
        AuthenticationError: no token supplied (401)
        PermissionDeniedError: token does not match (403)
    """
    token = extract_token(request)
    if not token:
        logger.info(f"Rejected {request.method} {request.url.path}: no token")
        raise AuthenticationError("Access token required")

    if not hmac.compare_digest(token.encode("utf-8"), settings.AUTH_TOKEN.encode("utf-8")):
        logger.warning(f"Rejected {request.method} {request.url.path}: invalid token")
        raise PermissionDeniedError("Invalid token")

    user = dict(ADMIN_USER)
    request.state.user = user
    return user
