from dataclasses import dataclass, field
from functools import wraps

from flask import g
from security.session import get_session_from_request
from services.errors import Unauthorized
from models.user import User
from utils.roles import BACKOFFICE, primary_role, role_names


@dataclass(frozen=True)
class AuthContext:
    """Validated identity of the caller, built once per request."""
    user_id: int
    username: str
    role: str
    roles: frozenset = field(default_factory=frozenset)

    @property
    def is_backoffice(self) -> bool:
        return BACKOFFICE in self.roles or self.role == BACKOFFICE

    def has_any(self, *role_names_: str) -> bool:
        if self.is_backoffice:
            return True
        held = set(self.roles) | {self.role}
        return bool(held.intersection(role_names_))

    def owns(self, user_id: int) -> bool:
        return self.user_id == user_id

    @classmethod
    def for_user(cls, user: User, role: str = None) -> "AuthContext":
        names = frozenset(role_names(user.roles))
        return cls(
            user_id=user.id,
            username=user.username,
            role=role or primary_role(names) or "",
            roles=names,
        )


def load_current_user():
    g.auth = None
    g.user = None
    g.session = None

    sess = get_session_from_request()
    if not sess:
        return

    user = User.query.get(sess.user_id)
    if not user or not user.is_active:
        return

    g.session = sess
    g.user = user
    g.auth = AuthContext.for_user(user, role=sess.role)

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "auth", None) is None:
            raise Unauthorized()
        return fn(*args, **kwargs)
    return wrapper
