from functools import wraps
from flask_jwt_extended import verify_jwt_in_request, get_jwt

from library_api.errors import Unauthorized


def role_required(*roles):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            claims = get_jwt()
            role = claims.get("role")
            if role not in roles:
                raise Unauthorized()
            return fn(*args, **kwargs)
        return wrapper
    return decorator
