"""Role-based permission decorators and utilities."""

from functools import wraps
from typing import Callable

from app.exceptions import ForbiddenException, UnauthorizedException
from app.models.user import Role
from app.utils.request_context import get_current_user_id_or_none, get_current_user_role


def require_role(*allowed_roles: Role | str) -> Callable:
    """Decorator that enforces role-based access control.

    Usage:
        @router.post("/listings")
        @require_role(Role.AGENT)
        async def create_listing(...):
            ...

    Args:
        *allowed_roles: Roles that are allowed to access the endpoint

    Returns:
        Decorator function
    """
    # Convert Role enums to strings for comparison
    role_values = set()
    for role in allowed_roles:
        if isinstance(role, Role):
            role_values.add(role.value)
        else:
            role_values.add(role)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            if get_current_user_id_or_none() is None:
                raise UnauthorizedException()

            current_role = get_current_user_role()

            # Admins can access everything
            if current_role == Role.ADMIN.value:
                return await func(*args, **kwargs)

            if current_role not in role_values:
                raise ForbiddenException()

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_admin() -> Callable:
    """Decorator that requires the ADMIN role."""
    return require_role(Role.ADMIN)


def require_agent() -> Callable:
    """Decorator that requires AGENT or ADMIN."""
    return require_role(Role.AGENT)


def require_authenticated() -> Callable:
    """Decorator that requires any authenticated user."""
    return require_role(Role.ADMIN, Role.AGENT, Role.PROMOTER)
