# Bearer-token identity for the admin, lawyer and customer endpoints
import datetime
from dataclasses import dataclass
from functools import wraps

import jwt
from flask import current_app, request

from app.errors import Unauthorized
from app.statuses import Role


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    role: Role
    email: str = None

    @property
    def is_admin(self):
        return self.role is Role.ADMIN


def issue_token(user_id, role, email=None, expires_in=None):
    """Sign a token with the same payload the login endpoint hands out."""
    payload = {
        "user_id": user_id,
        "email": email,
        "role": Role(role).value,
        "exp": datetime.datetime.now(datetime.timezone.utc)
        + (expires_in or datetime.timedelta(hours=1)),
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")


def current_user():
    """Decode the Authorization header of the current request."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise Unauthorized("Missing bearer token", status_code=401)

    token = header.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(
            token, current_app.config["SECRET_KEY"], algorithms=["HS256"]
        )
        user = CurrentUser(
            user_id=int(payload["user_id"]),
            role=Role(payload["role"]),
            email=payload.get("email"),
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired", status_code=401)
    except (jwt.InvalidTokenError, KeyError, ValueError, TypeError):
        raise Unauthorized("Invalid token", status_code=401)

    return user


def require_role(*roles):
    """Reject the request unless the caller holds one of ``roles``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user.role not in roles:
                raise Unauthorized(
                    f"This action requires role: {', '.join(r.value for r in roles)}"
                )
            return view(*args, **kwargs)

        return wrapper

    return decorator
