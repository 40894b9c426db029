"""
Typed Exception Hierarchy for the Print-Shop Workflow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The HTTP layer that consumes the workflow engine must map every failure to a
stable response without parsing message text.  Every error therefore:

  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)
  4. Declares the HTTP status its category maps to

Example - WRONG way to handle errors:
    try:
        engine.submit_budget(budget_id, actor)
    except Exception as e:
        if "client" in str(e):  # FRAGILE - message might change
            show_client_picker()

Example - RIGHT way:
    try:
        engine.submit_budget(budget_id, actor)
    except ValidationFailedError as e:
        if "client_id" in e.fields:
            show_client_picker()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PrintShopError:

    PrintShopError (base)
    |
    +-- NotFoundError
    |   +-- BudgetNotFoundError
    |   +-- OrderNotFoundError
    |   +-- ClientNotFoundError
    |   +-- CenterNotFoundError
    |
    +-- UnauthorizedError
    |
    +-- InvalidTransitionError
    |   +-- BudgetAlreadyConvertedError
    |
    +-- ValidationFailedError
    |
    +-- AllocationFailedError
    |   +-- SequenceExhaustedError
    |
    +-- ConflictDetectedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                  | HTTP | Retry | When Raised
----------------------|------|-------|------------------------------------------
NOT_FOUND             | 404  | no    | Budget/order/client/center id unknown
UNAUTHORIZED          | 403  | no    | Actor role below the action's minimum
INVALID_TRANSITION    | 409  | no    | Current state does not allow the action
BUDGET_ALREADY_CONVERTED | 409 | no   | Budget already has its one order
VALIDATION_FAILED     | 400  | no    | Missing client/center, empty reason, ...
ALLOCATION_FAILED     | 503  | yes   | Counter storage fault during allocation
SEQUENCE_EXHAUSTED    | 503  | yes*  | Counter passed its configured maximum
CONFLICT_DETECTED     | 409  | yes   | Concurrent write lost a compare-and-swap,
                      |      |       | or storage failed (lock timeout, deadlock)

(*) retry only helps once the numbering scheme is widened or a new period
    starts; the engine itself never retries.

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Codes and HTTP statuses are class attributes so the HTTP layer can build
   documentation and error maps without instantiating anything.

2. ``details`` holds internal diagnostic text (e.g. the storage driver's
   message).  ``to_payload`` only exposes it to ADMIN actors; other roles get
   the public message alone.

3. ``retryable`` marks the two categories a caller may retry as a whole
   operation (AllocationFailed, ConflictDetected).
===============================================================================
"""

from __future__ import annotations

from typing import Any


class PrintShopError(Exception):
    """
    Base exception for all workflow kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PRINTSHOP_ERROR"
    http_status: int = 500
    retryable: bool = False

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_payload(self, role: Any = None) -> dict[str, Any]:
        """Build the response body for the HTTP layer.

        Internal ``details`` are only included for ADMIN actors.
        """
        payload: dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details and _is_admin(role):
            payload["details"] = self.details
        return payload


def _is_admin(role: Any) -> bool:
    value = getattr(role, "value", role)
    return str(value or "").upper() == "ADMIN"


# Lookup errors


class NotFoundError(PrintShopError):
    """Target entity does not exist."""

    code: str = "NOT_FOUND"
    http_status: int = 404

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class BudgetNotFoundError(NotFoundError):
    """Budget with given ID was not found."""

    def __init__(self, budget_id: Any):
        super().__init__("Budget", budget_id)


class OrderNotFoundError(NotFoundError):
    """Order with given ID was not found."""

    def __init__(self, order_id: Any):
        super().__init__("Order", order_id)


class ClientNotFoundError(NotFoundError):
    """Client with given ID was not found."""

    def __init__(self, client_id: Any):
        super().__init__("Client", client_id)


class CenterNotFoundError(NotFoundError):
    """Production center with given ID was not found."""

    def __init__(self, center_id: Any):
        super().__init__("ProductionCenter", center_id)


# Authorization


class UnauthorizedError(PrintShopError):
    """Actor role is insufficient for the requested action.

    Never carries entity state; only the action and the role involved.
    """

    code: str = "UNAUTHORIZED"
    http_status: int = 403

    def __init__(self, action: str, role: str, reason: str):
        self.action = action
        self.role = role
        self.reason = reason
        super().__init__(reason)


# Workflow


class InvalidTransitionError(PrintShopError):
    """The entity's current state does not permit the requested action."""

    code: str = "INVALID_TRANSITION"
    http_status: int = 409

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        current_state: str,
        action: str,
        message: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_state = current_state
        self.action = action
        super().__init__(
            message
            or f"Cannot {action} {entity_type} {entity_id}: "
            f"current state is {current_state}"
        )


class BudgetAlreadyConvertedError(InvalidTransitionError):
    """Budget already produced its one order; conversion is not repeatable."""

    code: str = "BUDGET_ALREADY_CONVERTED"

    def __init__(self, budget_id: Any, current_state: str, order_id: Any):
        self.order_id = order_id
        super().__init__(
            "Budget",
            budget_id,
            current_state,
            "convert_budget_to_order",
            message=f"Budget {budget_id} was already converted into order {order_id}",
        )


class ValidationFailedError(PrintShopError):
    """Required fields are missing or invalid for the requested action."""

    code: str = "VALIDATION_FAILED"
    http_status: int = 400

    def __init__(self, message: str, field_errors: dict[str, str] | None = None):
        self.field_errors = dict(field_errors or {})
        super().__init__(message)

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(sorted(self.field_errors))

    def to_payload(self, role: Any = None) -> dict[str, Any]:
        payload = super().to_payload(role)
        if self.field_errors:
            payload["fields"] = dict(self.field_errors)
        return payload


# Numbering


class AllocationFailedError(PrintShopError):
    """Document number could not be issued.

    Fatal for the current request; the caller may retry the whole operation.
    """

    code: str = "ALLOCATION_FAILED"
    http_status: int = 503
    retryable: bool = True

    def __init__(self, sequence_key: str, reason: str, details: str | None = None):
        self.sequence_key = sequence_key
        self.reason = reason
        super().__init__(
            f"Could not allocate a number for sequence {sequence_key}: {reason}",
            details=details,
        )


class SequenceExhaustedError(AllocationFailedError):
    """Counter would pass its configured maximum; numbers never wrap."""

    code: str = "SEQUENCE_EXHAUSTED"

    def __init__(self, sequence_key: str, max_value: int):
        self.max_value = max_value
        super().__init__(sequence_key, f"sequence exhausted at {max_value}")


# Concurrency


class ConflictDetectedError(PrintShopError):
    """
    A concurrent write won a compare-and-swap on the same entity, or the
    database refused the operation (lock wait timeout, deadlock, dropped
    connection).  The driver message goes to ``details``.
    """

    code: str = "CONFLICT_DETECTED"
    http_status: int = 409
    retryable: bool = True

    def __init__(self, entity_type: str, entity_id: Any, details: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id}; retry the operation",
            details=details,
        )
