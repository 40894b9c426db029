"""
printshop_services.authorization -- role policy at the workflow boundary.

Responsibility:
    Decide whether a role may perform an action.  One table,
    ``ACTION_MINIMUM_ROLE``, holds every rule; nothing else in the codebase
    compares roles.

Architecture position:
    Services layer.  Pure, no I/O.  Called by the workflow executor and the
    order service after the target entity has been found and before its
    state is examined.

Invariants:
    - Independent of entity state: a denial never depends on, or reveals,
      anything about the budget or order involved.
    - Every Action has an entry; an action missing from the table is denied.
"""

from __future__ import annotations

from printshop_kernel.domain.roles import Action, Actor, Role
from printshop_kernel.exceptions import UnauthorizedError
from printshop_kernel.logging_config import get_logger

logger = get_logger("services.authorization")

ACTION_MINIMUM_ROLE: dict[Action, Role] = {
    Action.READ_BUDGET: Role.USER,
    Action.CREATE_BUDGET: Role.USER,
    Action.UPDATE_BUDGET: Role.USER,
    Action.SUBMIT_BUDGET: Role.MODERATOR,
    Action.APPROVE_BUDGET: Role.MODERATOR,
    Action.REJECT_BUDGET: Role.MODERATOR,
    Action.CONVERT_BUDGET_TO_ORDER: Role.MODERATOR,
    Action.READ_ORDER: Role.USER,
    Action.CREATE_ORDER: Role.USER,
    Action.UPDATE_ORDER_STATUS: Role.USER,
    Action.DELETE_ORDER: Role.MODERATOR,
}


def can_perform(role: Role, action: Action | str) -> bool:
    """True iff ``role`` meets the minimum role for ``action``."""
    allowed, _ = check_authorization(role, action)
    return allowed


def check_authorization(role: Role, action: Action | str) -> tuple[bool, str]:
    """Check whether ``role`` may perform ``action``.

    Returns:
        (allowed, reason). reason is empty when allowed, or a short
        human-readable message when denied.
    """
    try:
        action = Action(action)
    except ValueError:
        return (False, f"Unknown action '{action}'")

    minimum = ACTION_MINIMUM_ROLE.get(action)
    if minimum is None:
        return (False, f"No role may perform '{action.value}'")

    if role < minimum:
        return (
            False,
            f"Action '{action.value}' requires role {minimum.value} or higher; "
            f"actor has {role.value}",
        )
    return (True, "")


def require_authorization(actor: Actor, action: Action | str) -> None:
    """
    Raise unless ``actor`` may perform ``action``.

    Raises:
        UnauthorizedError: carrying the denial reason.
    """
    allowed, reason = check_authorization(actor.role, action)
    if not allowed:
        action_name = action.value if isinstance(action, Action) else str(action)
        logger.info(
            "authorization_denied",
            extra={
                "action": action_name,
                "actor_id": actor.user_id,
                "actor_role": actor.role.value,
            },
        )
        raise UnauthorizedError(action_name, actor.role.value, reason)
