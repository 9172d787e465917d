from __future__ import annotations
from dataclasses import dataclass
from typing import Union

ADMIN_ORG_ROLE = "org:admin"


@dataclass(frozen=True)
class AdminRole:
    """The organization's own cut. One balance per organization, shared by its admins."""

    @property
    def key(self) -> str:
        return "admin"

    @property
    def is_admin(self) -> bool:
        return True


@dataclass(frozen=True)
class MemberRole:
    user_id: str

    @property
    def key(self) -> str:
        return f"member:{self.user_id}"

    @property
    def is_admin(self) -> bool:
        return False


Role = Union[AdminRole, MemberRole]


@dataclass(frozen=True)
class Caller:
    """Identity context handed over by the membership provider. Trusted as is."""

    organization_id: str
    user_id: str
    is_admin: bool = False

    @classmethod
    def from_org_role(cls, organization_id: str, user_id: str, org_role: str | None) -> "Caller":
        return cls(organization_id=organization_id, user_id=user_id, is_admin=org_role == ADMIN_ORG_ROLE)

    @property
    def role(self) -> Role:
        if self.is_admin:
            return AdminRole()
        return MemberRole(self.user_id)
