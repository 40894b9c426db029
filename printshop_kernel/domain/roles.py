"""
Roles, actions and the verified actor identity.

Responsibility:
    Defines the privilege ladder ``USER < MODERATOR < ADMIN`` as a totally
    ordered enum, the closed set of workflow actions, and the ``Actor`` value
    object handed to every service call by the identity layer.

Architecture position:
    Kernel > Domain.  Pure value objects, zero I/O.  The policy table that
    maps actions to minimum roles lives in ``printshop_services.authorization``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Actor privilege level, ordered by rank rather than by name."""

    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        """Resolve a role name case-insensitively.

        Raises:
            ValueError: If the name is not a known role.
        """
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank


_ROLE_RANK: dict[Role, int] = {
    Role.USER: 1,
    Role.MODERATOR: 2,
    Role.ADMIN: 3,
}


class Action(str, Enum):
    """Every operation the engine authorizes."""

    READ_BUDGET = "read_budget"
    CREATE_BUDGET = "create_budget"
    UPDATE_BUDGET = "update_budget"
    SUBMIT_BUDGET = "submit_budget"
    APPROVE_BUDGET = "approve_budget"
    REJECT_BUDGET = "reject_budget"
    CONVERT_BUDGET_TO_ORDER = "convert_budget_to_order"
    READ_ORDER = "read_order"
    CREATE_ORDER = "create_order"
    UPDATE_ORDER_STATUS = "update_order_status"
    DELETE_ORDER = "delete_order"


@dataclass(frozen=True)
class Actor:
    """An already-verified caller identity.

    The engine never authenticates; it trusts whatever the identity layer
    hands it.
    """

    user_id: int
    role: Role

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role.parse(self.role))

    @property
    def log_fields(self) -> dict[str, str]:
        return {"actor_id": str(self.user_id), "actor_role": self.role.value}
