"""
Authenticated caller handed to the services by the auth layer.
"""
from dataclasses import dataclass

from domain.enums import Role


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def can_access(self, owner_id: int) -> bool:
        """Admins see everything; customers only their own records."""
        return self.is_admin or self.user_id == owner_id
