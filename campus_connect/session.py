from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

USER_ROLES = ("admin", "faculty", "student", "assessor")

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"
USER_NAME_HEADER = "X-User-Name"


class SessionError(ValueError):
    pass


@dataclass(frozen=True)
class Session:
    """Identity of the caller for a single request.

    Built per request and handed to the code that needs it; nothing about the
    current user is kept in module state.
    """

    user_id: str
    role: str
    user_name: str = ""

    @property
    def display_name(self) -> str:
        return self.user_name or self.user_id

    def has_role(self, *roles: str) -> bool:
        return self.role in roles

    def require_role(self, *roles: str) -> None:
        if not self.has_role(*roles):
            raise PermissionError(f"Role '{self.role}' is not allowed to perform this action.")


def session_from_headers(headers: Mapping[str, str]) -> Session:
    user_id = str(headers.get(USER_ID_HEADER, "") or "").strip()
    role = str(headers.get(USER_ROLE_HEADER, "") or "").strip().lower()
    user_name = str(headers.get(USER_NAME_HEADER, "") or "").strip()

    if not user_id or not role:
        raise SessionError(f"{USER_ID_HEADER} and {USER_ROLE_HEADER} headers are required.")
    if role not in USER_ROLES:
        raise SessionError(f"Unknown user role: {role}")
    return Session(user_id=user_id, role=role, user_name=user_name)
