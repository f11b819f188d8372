# -*- coding: utf-8 -*-
from functools import wraps
from flask_login import current_user

from .errors import error_response


def roles_required(*roles):
    """
    Not logged in -> 401 JSON.
    Role not in the list (or account disabled) -> 403 JSON.
    """
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return error_response(401, "Unauthorized")
            if not current_user.is_active or current_user.role not in roles:
                return error_response(403, "Forbidden")
            return f(*args, **kwargs)
        return wrapper
    return decorator
