"""Caller identity passed explicitly into every lifecycle operation."""

from dataclasses import dataclass

from src.sm_common.enums import Role


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_provider(self) -> bool:
        return self.role == Role.PROVIDER

    @property
    def is_seeker(self) -> bool:
        return self.role == Role.SEEKER


SYSTEM_ACTOR = Actor(user_id="system", role=Role.ADMIN)
