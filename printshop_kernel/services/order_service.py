"""
Service layer for Order persistence.

Flush-only.  Builds orders from a budget snapshot or from direct input,
changes the flat production status with an audit line, and removes direct
orders.  Public reads return ``OrderInfo`` DTOs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select

from printshop_kernel.domain.roles import Actor
from printshop_kernel.domain.statuses import OrderStatus, OrderType
from printshop_kernel.exceptions import (
    OrderNotFoundError,
    ValidationFailedError,
)
from printshop_kernel.logging_config import get_logger
from printshop_kernel.models.budget import Budget
from printshop_kernel.models.order import (
    BUDGET_SNAPSHOT_FIELDS,
    BUDGET_SNAPSHOT_TEXT_FIELDS,
    Order,
)
from printshop_kernel.services import validation as v
from printshop_kernel.services.base import BaseService

logger = get_logger("services.order")

_OPTIONAL_TEXT_FIELDS = (
    "solicitante",
    "documento",
    "editorial",
    "tipo_produto",
    "cor_miolo",
    "papel_miolo",
    "papel_capa",
    "cor_capa",
    "laminacao",
    "acabamento",
    "shrink",
    "pagamento",
    "frete",
    "obs",
)

DIRECT_ORDER_FIELDS = frozenset(
    {
        "client_id",
        "center_id",
        "title",
        "tiragem",
        "formato",
        "num_paginas_total",
        "num_paginas_coloridas",
        "valor_unitario",
        "valor_total",
        "prazo_entrega",
        "data_pedido",
        "data_entrega",
    }
) | frozenset(_OPTIONAL_TEXT_FIELDS)


@dataclass(frozen=True)
class OrderInfo:
    """Immutable snapshot of an order."""

    id: int
    numero_pedido: str
    status: OrderStatus
    order_type: OrderType
    budget_id: int | None
    client_id: int
    center_id: int
    title: str
    tiragem: int
    formato: str
    num_paginas_total: int
    num_paginas_coloridas: int
    valor_unitario: Decimal
    valor_total: Decimal
    prazo_entrega: str
    obs: str
    data_pedido: datetime | None
    data_entrega: datetime | None
    solicitante: str | None
    documento: str | None
    editorial: str | None
    tipo_produto: str | None
    cor_miolo: str | None
    papel_miolo: str | None
    papel_capa: str | None
    cor_capa: str | None
    laminacao: str | None
    acabamento: str | None
    shrink: str | None
    pagamento: str | None
    frete: str | None
    production_notes: str | None

    @property
    def is_budget_derived(self) -> bool:
        return self.order_type == OrderType.BUDGET_DERIVED


class OrderService(BaseService[Order]):
    """Order persistence: snapshot creation, direct creation, status, delete."""

    model = Order
    not_found = OrderNotFoundError

    def _to_dto(self, order: Order) -> OrderInfo:
        return OrderInfo(
            id=order.id,
            numero_pedido=order.numero_pedido,
            status=OrderStatus(order.status),
            order_type=OrderType(order.order_type),
            budget_id=order.budget_id,
            client_id=order.client_id,
            center_id=order.center_id,
            title=order.title,
            tiragem=order.tiragem,
            formato=order.formato,
            num_paginas_total=order.num_paginas_total,
            num_paginas_coloridas=order.num_paginas_coloridas,
            valor_unitario=order.valor_unitario,
            valor_total=order.valor_total,
            prazo_entrega=order.prazo_entrega,
            obs=order.obs,
            data_pedido=order.data_pedido,
            data_entrega=order.data_entrega,
            solicitante=order.solicitante,
            documento=order.documento,
            editorial=order.editorial,
            tipo_produto=order.tipo_produto,
            cor_miolo=order.cor_miolo,
            papel_miolo=order.papel_miolo,
            papel_capa=order.papel_capa,
            cor_capa=order.cor_capa,
            laminacao=order.laminacao,
            acabamento=order.acabamento,
            shrink=order.shrink,
            pagamento=order.pagamento,
            frete=order.frete,
            production_notes=order.production_notes,
        )

    def to_info(self, order: Order) -> OrderInfo:
        return self._to_dto(order)

    def get_by_id(self, order_id: int) -> OrderInfo:
        return self._to_dto(self.load(order_id))

    def find_by_budget(self, budget_id: int) -> OrderInfo | None:
        order = self.session.execute(
            select(Order).where(Order.budget_id == budget_id)
        ).scalar_one_or_none()
        return self._to_dto(order) if order is not None else None

    def create_from_budget(self, budget: Budget) -> Order:
        """
        Snapshot a budget into a new PENDING order.

        Values are copied, never referenced, so later budget edits do not
        reach the order.  The budget must already carry its numero_pedido
        and both associations.
        """
        assert budget.numero_pedido, "budget must be numbered before conversion"
        assert budget.client_id is not None and budget.center_id is not None

        order = Order(
            numero_pedido=budget.numero_pedido,
            status=OrderStatus.PENDING.value,
            order_type=OrderType.BUDGET_DERIVED.value,
            budget_id=budget.id,
            client_id=budget.client_id,
            center_id=budget.center_id,
            date=self.clock.now(),
        )
        for source, target in BUDGET_SNAPSHOT_FIELDS.items():
            setattr(order, target, getattr(budget, source))
        for source, target in BUDGET_SNAPSHOT_TEXT_FIELDS.items():
            setattr(order, target, getattr(budget, source) or "")

        self.session.add(order)
        self.session.flush()
        return order

    def create_direct(self, fields: dict[str, Any], *, numero_pedido: str) -> Order:
        """
        Insert a DIRECT_ORDER with no originating budget.

        Raises:
            ValidationFailedError: Missing or malformed fields.
            ClientNotFoundError / CenterNotFoundError: Dangling association.
        """
        values = dict(fields)
        self._validate_direct(values)

        self._check_parties(values["client_id"], values["center_id"])

        values.setdefault("obs", "")
        order = Order(
            numero_pedido=numero_pedido,
            status=OrderStatus.PENDING.value,
            order_type=OrderType.DIRECT_ORDER.value,
            date=self.clock.now(),
            **values,
        )
        if order.obs is None:
            order.obs = ""
        self.session.add(order)
        self.session.flush()

        logger.info(
            "order_created",
            extra={"order_id": order.id, "numero_pedido": numero_pedido},
        )
        return order

    def set_status(
        self,
        order: Order,
        status: OrderStatus,
        actor: Actor,
        reason: str | None = None,
    ) -> bool:
        """
        Change the flat production status.

        Returns False (and writes nothing) when the order already has
        ``status``.  Otherwise appends an audit line to production_notes.
        """
        previous = order.status
        if previous == status.value:
            return False

        stamp = self.clock.now().strftime("%Y-%m-%d %H:%M")
        line = f"[{stamp}] {previous} -> {status.value} by user {actor.user_id}"
        if reason and reason.strip():
            line = f"{line}: {reason.strip()}"
        order.production_notes = (
            f"{order.production_notes}\n{line}" if order.production_notes else line
        )
        order.status = status.value
        self.session.flush()
        return True

    def delete(self, order: Order) -> None:
        self.session.delete(order)
        self.session.flush()

    def _validate_direct(self, values: dict[str, Any]) -> None:
        errors: dict[str, str] = {}
        for name in values:
            if name not in DIRECT_ORDER_FIELDS:
                errors[name] = "is not a direct order field"
        for name in ("client_id", "center_id"):
            if values.get(name) is None:
                errors[name] = "is required"
            else:
                v.check_optional_id(errors, values, name)
        v.check_required_text(errors, values, "title")
        v.check_required_text(errors, values, "formato")
        v.check_required_text(errors, values, "prazo_entrega")
        v.check_int(errors, values, "tiragem", minimum=1)
        v.check_int(errors, values, "num_paginas_total", minimum=0)
        v.check_int(errors, values, "num_paginas_coloridas", minimum=0)
        v.check_money(errors, values, "valor_unitario")
        v.check_money(errors, values, "valor_total")
        for name in _OPTIONAL_TEXT_FIELDS:
            v.check_optional_text(errors, values, name)
        for name in ("data_pedido", "data_entrega"):
            v.check_optional_datetime(errors, values, name)
        if errors:
            raise ValidationFailedError("Order fields are invalid", errors)
