"""
Service layer for Budget persistence.

Flush-only.  Creates budgets, applies edits to their quoted fields, and
loads them (optionally under a row lock) for the workflow services in
``printshop_services``, which own every transaction and every status
change.

Public reads return ``BudgetInfo`` DTOs; ``load`` hands the ORM row to the
workflow layer that is about to mutate it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select

from printshop_kernel.domain.budget_workflow import EDITABLE_STATES
from printshop_kernel.domain.statuses import BudgetStatus
from printshop_kernel.exceptions import (
    BudgetNotFoundError,
    InvalidTransitionError,
    ValidationFailedError,
)
from printshop_kernel.logging_config import get_logger
from printshop_kernel.models.budget import QUOTED_FIELDS, Budget
from printshop_kernel.models.order import Order
from printshop_kernel.services import validation as v
from printshop_kernel.services.base import BaseService

logger = get_logger("services.budget")

_TEXT_FIELDS = (
    "prazo_producao",
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
    "observacoes",
)

# Quoted fields plus the two associations
EDITABLE_FIELDS = frozenset(QUOTED_FIELDS) | {"client_id", "center_id"}


@dataclass(frozen=True)
class BudgetInfo:
    """Immutable snapshot of a budget."""

    id: int
    status: BudgetStatus
    numero_pedido: str | None
    client_id: int | None
    center_id: int | None
    titulo: str
    tiragem: int
    formato: str
    total_pgs: int
    pgs_colors: int
    preco_unitario: Decimal
    preco_total: Decimal
    prazo_producao: str | None
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
    observacoes: str | None
    submitted_at: datetime | None
    approved_at: datetime | None
    approved_by_id: int | None
    rejected_at: datetime | None
    rejected_by_id: int | None
    converted_at: datetime | None
    order_id: int | None
    version: int

    @property
    def is_editable(self) -> bool:
        return self.status.value in EDITABLE_STATES


class BudgetService(BaseService[Budget]):
    """
    Budget persistence: create, edit, load.

    Never changes ``status``, ``numero_pedido`` or the lifecycle audit
    columns; those belong to the workflow executor and conversion
    orchestrator.
    """

    model = Budget
    not_found = BudgetNotFoundError

    def _to_dto(self, budget: Budget) -> BudgetInfo:
        order_id = self.session.execute(
            select(Order.id).where(Order.budget_id == budget.id)
        ).scalar_one_or_none()
        return BudgetInfo(
            id=budget.id,
            status=BudgetStatus(budget.status),
            numero_pedido=budget.numero_pedido,
            client_id=budget.client_id,
            center_id=budget.center_id,
            titulo=budget.titulo,
            tiragem=budget.tiragem,
            formato=budget.formato,
            total_pgs=budget.total_pgs,
            pgs_colors=budget.pgs_colors,
            preco_unitario=budget.preco_unitario,
            preco_total=budget.preco_total,
            prazo_producao=budget.prazo_producao,
            data_pedido=budget.data_pedido,
            data_entrega=budget.data_entrega,
            solicitante=budget.solicitante,
            documento=budget.documento,
            editorial=budget.editorial,
            tipo_produto=budget.tipo_produto,
            cor_miolo=budget.cor_miolo,
            papel_miolo=budget.papel_miolo,
            papel_capa=budget.papel_capa,
            cor_capa=budget.cor_capa,
            laminacao=budget.laminacao,
            acabamento=budget.acabamento,
            shrink=budget.shrink,
            pagamento=budget.pagamento,
            frete=budget.frete,
            observacoes=budget.observacoes,
            submitted_at=budget.submitted_at,
            approved_at=budget.approved_at,
            approved_by_id=budget.approved_by_id,
            rejected_at=budget.rejected_at,
            rejected_by_id=budget.rejected_by_id,
            converted_at=budget.converted_at,
            order_id=order_id,
            version=budget.version,
        )

    def to_info(self, budget: Budget) -> BudgetInfo:
        return self._to_dto(budget)

    def get_by_id(self, budget_id: int) -> BudgetInfo:
        """
        Get budget by ID.

        Raises:
            BudgetNotFoundError: If budget doesn't exist.
        """
        return self._to_dto(self.load(budget_id))

    def has_order(self, budget_id: int) -> bool:
        return self.session.execute(
            select(Order.id).where(Order.budget_id == budget_id)
        ).first() is not None

    def create(self, fields: dict[str, Any], *, numero_pedido: str | None = None) -> Budget:
        """
        Insert a DRAFT budget.

        Args:
            fields: Quoted fields plus optional client_id/center_id.
            numero_pedido: Pre-allocated number, if the caller drew one.

        Raises:
            ValidationFailedError: Unknown, missing or malformed fields.
            ClientNotFoundError / CenterNotFoundError: Dangling association.
        """
        values = dict(fields)
        self._validate(values, partial=False)
        self._check_associations(values)

        budget = Budget(
            status=BudgetStatus.DRAFT.value,
            numero_pedido=numero_pedido,
            **values,
        )
        if budget.data_pedido is None:
            budget.data_pedido = self.clock.now()
        self.session.add(budget)
        self.session.flush()

        logger.info(
            "budget_created",
            extra={"budget_id": budget.id, "numero_pedido": numero_pedido},
        )
        return budget

    def apply_update(self, budget: Budget, fields: dict[str, Any]) -> Budget:
        """
        Apply edits to quoted fields.

        On a REJECTED budget ``observacoes`` carries the rejection note and
        may only be extended: the new text must start with the current one.

        Raises:
            InvalidTransitionError: Budget is not DRAFT or REJECTED.
            ValidationFailedError: Unknown, status-governing or malformed
                fields, or a rewrite of a rejected budget's notes.
        """
        if budget.status not in EDITABLE_STATES:
            raise InvalidTransitionError(
                "Budget", budget.id, budget.status, "update_budget"
            )
        values = dict(fields)
        self._validate(values, partial=True)
        if budget.status == BudgetStatus.REJECTED.value and "observacoes" in values:
            current = budget.observacoes or ""
            if not (values["observacoes"] or "").startswith(current):
                raise ValidationFailedError(
                    f"Budget {budget.id} is rejected; its notes can only be appended to",
                    {"observacoes": "must keep the existing notes, including the rejection note"},
                )
        self._check_associations(values)

        for name, value in values.items():
            setattr(budget, name, value)
        self.session.flush()

        logger.info(
            "budget_updated",
            extra={"budget_id": budget.id, "fields": sorted(values)},
        )
        return budget

    def _validate(self, values: dict[str, Any], *, partial: bool) -> None:
        errors: dict[str, str] = {}

        for name in values:
            if name not in EDITABLE_FIELDS:
                errors[name] = "is not an editable budget field"

        def present(name: str) -> bool:
            return not partial or name in values

        if present("titulo"):
            v.check_required_text(errors, values, "titulo")
        if present("formato"):
            v.check_required_text(errors, values, "formato")
        if present("tiragem"):
            v.check_int(errors, values, "tiragem", minimum=1)
        if present("total_pgs"):
            v.check_int(errors, values, "total_pgs", minimum=0)
        if present("pgs_colors"):
            v.check_int(errors, values, "pgs_colors", minimum=0)
        if present("preco_unitario"):
            v.check_money(errors, values, "preco_unitario")
        if present("preco_total"):
            v.check_money(errors, values, "preco_total")
        for name in _TEXT_FIELDS:
            v.check_optional_text(errors, values, name)
        for name in ("data_pedido", "data_entrega"):
            v.check_optional_datetime(errors, values, name)
        for name in ("client_id", "center_id"):
            v.check_optional_id(errors, values, name)

        if errors:
            raise ValidationFailedError("Budget fields are invalid", errors)

    def _check_associations(self, values: dict[str, Any]) -> None:
        self._check_parties(values.get("client_id"), values.get("center_id"))
