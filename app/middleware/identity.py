"""Identity middleware reading the caller from gateway-supplied headers."""

import logging
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.models.user import Role
from app.utils.request_context import (
    clear_all_context,
    set_current_user_id,
    set_current_user_role,
)

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"

_VALID_ROLES = {role.value for role in Role}


class IdentityMiddleware(BaseHTTPMiddleware):
    """Populates the request context with the authenticated caller.

    Authentication itself happens upstream; requests without identity
    headers run with an empty context and are rejected by the permission
    decorators on protected routes.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and extract identity context."""
        # Clear context from previous request
        clear_all_context()

        raw_user_id = request.headers.get(USER_ID_HEADER)
        raw_role = request.headers.get(USER_ROLE_HEADER, "").strip().upper()

        if raw_user_id:
            try:
                set_current_user_id(uuid.UUID(raw_user_id))
                if raw_role in _VALID_ROLES:
                    set_current_user_role(raw_role)
            except ValueError:
                # Invalid UUID format - context will remain unset
                logger.debug(f"Ignoring malformed {USER_ID_HEADER} header on {request.url.path}")

        response = await call_next(request)

        # Clear context after request
        clear_all_context()

        return response
