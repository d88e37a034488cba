"""Admin shared-secret authentication.

Review endpoints (status updates) are protected by a single password sent in
the X-Admin-Password header and compared in constant time against
APP_ADMIN_PASSWORD. There are no user accounts.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

from app.core.config import settings
from app.core.errors import AuthenticationAppError
from app.core.logging import hash_for_log

logger = logging.getLogger(__name__)

ADMIN_PASSWORD_HEADER = "X-Admin-Password"


def validate_admin_password(provided: str) -> None:
    """Check a provided password against the configured admin secret.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided: Password supplied by the caller.

    Raises:
        AuthenticationAppError: If the password is wrong, or the gate is
            enabled while no password is configured.
    """
    if not settings.app.admin_auth_required:
        return

    expected = (settings.app.admin_password or "").strip()
    if not expected:
        logger.error(
            "admin_auth_failed",
            extra={"reason": "admin_password_not_configured"},
        )
        raise AuthenticationAppError(
            code="admin_password_not_configured",
            message="Admin authentication is enabled but no admin password is configured",
            details={"hint": "Set APP_ADMIN_PASSWORD or disable the gate with APP_ADMIN_AUTH_REQUIRED=false"},
        )

    if not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning(
            "admin_auth_failed",
            extra={
                "reason": "invalid_admin_password",
                "password_hash": hash_for_log(provided),
            },
        )
        raise AuthenticationAppError(
            code="invalid_admin_password",
            message="Invalid admin password",
        )


async def verify_admin(
    x_admin_password: Annotated[str | None, Header(alias=ADMIN_PASSWORD_HEADER)] = None,
) -> None:
    """FastAPI dependency guarding admin-only endpoints.

    Usage:
        @router.patch("/submissions/{id}", dependencies=[Depends(verify_admin)])

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    if not settings.app.admin_auth_required:
        logger.debug("admin_auth.skipped", extra={"reason": "admin_auth_required_false"})
        return

    if not x_admin_password:
        logger.warning("admin_auth.missing_password")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing admin password. Provide {ADMIN_PASSWORD_HEADER} header.",
        )

    try:
        validate_admin_password(x_admin_password)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc

    logger.info("admin_auth.success")
