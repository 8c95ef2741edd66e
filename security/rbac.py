from functools import wraps
from flask import g

from services.errors import Forbidden, Unauthorized

def has_role(role_name: str) -> bool:
    auth = getattr(g, "auth", None)
    if not auth:
        return False
    return auth.has_any(role_name)

def require_roles(*role_names: str):
    """
    Usage: @require_roles("Backoffice", "StationOperator")
    Backoffice passes every check.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = getattr(g, "auth", None)
            if auth is None:
                raise Unauthorized()

            if not auth.has_any(*role_names):
                raise Forbidden(requiredRoles=list(role_names))

            return fn(*args, **kwargs)
        return wrapper
    return decorator
