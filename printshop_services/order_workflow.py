"""
printshop_services.order_workflow -- order operations for verified actors.

Responsibility:
    Direct order entry, the flat production-status label, and deletion of
    direct orders.  Budget-derived orders are created only by
    ``ConversionOrchestrator``.

Invariants enforced:
    - Order status has no transition graph: any valid OrderStatus may follow
      any other.  Each change appends one audit line to production_notes.
    - A budget-derived order is never deleted, so a CONVERTED budget always
      keeps its order.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from printshop_kernel.domain.clock import Clock, SystemClock
from printshop_kernel.domain.roles import Action, Actor
from printshop_kernel.domain.statuses import OrderStatus, OrderType
from printshop_kernel.exceptions import ConflictDetectedError, ValidationFailedError
from printshop_kernel.logging_config import LogContext, get_logger
from printshop_kernel.services.order_service import OrderInfo, OrderService
from printshop_services.authorization import require_authorization
from printshop_services.sequence_allocator import SequenceAllocator

logger = get_logger("services.order_workflow")


class OrderWorkflowService:
    """Order entry, status labelling and deletion."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        allocator: SequenceAllocator,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._allocator = allocator
        self._clock = clock or SystemClock()

    def get_order(self, order_id: int, actor: Actor) -> OrderInfo:
        session = self._session_factory()
        try:
            orders = OrderService(session, self._clock)
            order = orders.load(order_id)
            require_authorization(actor, Action.READ_ORDER)
            return orders.to_info(order)
        except SQLAlchemyError as exc:
            raise ConflictDetectedError("Order", order_id, details=str(exc)) from exc
        finally:
            session.rollback()
            session.close()

    def create_direct_order(self, actor: Actor, **fields: Any) -> OrderInfo:
        """
        Create a DIRECT_ORDER numbered from the ORDER sequence.

        The number is drawn first and is consumed even if validation of
        the order then fails.
        """
        require_authorization(actor, Action.CREATE_ORDER)
        number = self._allocator.next(SequenceAllocator.ORDER)

        session = self._session_factory()
        try:
            orders = OrderService(session, self._clock)
            order = orders.create_direct(fields, numero_pedido=number.text)
            info = orders.to_info(order)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise ConflictDetectedError("Order", number.text, details=str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
        return info

    def update_order_status(
        self,
        order_id: int,
        actor: Actor,
        status: OrderStatus | str,
        reason: str | None = None,
    ) -> OrderInfo:
        """
        Set the production status label.

        Raises:
            OrderNotFoundError, UnauthorizedError,
            ValidationFailedError: ``status`` is not an OrderStatus.
            ConflictDetectedError: concurrent update of the same order.
        """
        with LogContext.bind(
            entity_type="Order", entity_id=str(order_id), **actor.log_fields
        ):
            session = self._session_factory()
            try:
                orders = OrderService(session, self._clock)
                order = orders.load(order_id, for_update=True)
                require_authorization(actor, Action.UPDATE_ORDER_STATUS)
                new_status = _parse_status(status)
                previous = order.status
                changed = orders.set_status(order, new_status, actor, reason)
                info = orders.to_info(order)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise ConflictDetectedError("Order", order_id, details=str(exc)) from exc
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

            if changed:
                logger.info(
                    "order_status_changed",
                    extra={
                        "order_id": order_id,
                        "from_status": previous,
                        "to_status": new_status.value,
                    },
                )
            return info

    def delete_order(self, order_id: int, actor: Actor) -> None:
        """
        Delete a direct order.

        Raises:
            OrderNotFoundError, UnauthorizedError (below MODERATOR),
            ValidationFailedError: the order was derived from a budget.
        """
        session = self._session_factory()
        try:
            orders = OrderService(session, self._clock)
            order = orders.load(order_id, for_update=True)
            require_authorization(actor, Action.DELETE_ORDER)
            if order.order_type == OrderType.BUDGET_DERIVED.value:
                raise ValidationFailedError(
                    f"Order {order_id} was converted from budget {order.budget_id} "
                    f"and cannot be deleted",
                    {"order_type": "budget-derived orders cannot be deleted"},
                )
            orders.delete(order)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise ConflictDetectedError("Order", order_id, details=str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.info(
            "order_deleted",
            extra={"order_id": order_id, "actor_id": actor.user_id},
        )


def _parse_status(status: OrderStatus | str) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationFailedError(
            f"Invalid order status {status!r}",
            {"status": f"must be one of {allowed}"},
        ) from None
