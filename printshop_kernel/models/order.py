"""
Module: printshop_kernel.models.order
Responsibility: ORM persistence for production orders.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/statuses.py.

Invariants enforced:
    - numero_pedido is always present and unique.
    - budget_id is unique: a budget yields at most one order, enforced by the
      database as the last line of defence against double conversion.
    - Snapshot fields are plain columns, so later budget edits never reach
      an existing order.
    - production_notes is append-only.

Failure modes:
    - IntegrityError on duplicate numero_pedido or budget_id.
    - StaleDataError on a concurrent update of the same row.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printshop_kernel.db.base import Identifier, TrackedBase
from printshop_kernel.domain.statuses import OrderStatus, OrderType

if TYPE_CHECKING:
    from printshop_kernel.models.budget import Budget

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in OrderStatus)
_TYPE_VALUES = ", ".join(f"'{t.value}'" for t in OrderType)


class Order(TrackedBase):
    """A production job, either derived from a budget or entered directly."""

    __tablename__ = "orders"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_order_valid_status",
        ),
        CheckConstraint(
            f"order_type IN ({_TYPE_VALUES})",
            name="ck_order_valid_type",
        ),
        Index("idx_order_status", "status"),
        Index("idx_order_client", "client_id"),
    )

    numero_pedido: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING.value,
    )
    order_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderType.DIRECT_ORDER.value,
    )

    budget_id: Mapped[int | None] = mapped_column(
        Identifier,
        ForeignKey("budgets.id"),
        unique=True,
    )
    client_id: Mapped[int] = mapped_column(
        Identifier,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
    )
    center_id: Mapped[int] = mapped_column(
        Identifier,
        ForeignKey("production_centers.id", ondelete="RESTRICT"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    tiragem: Mapped[int] = mapped_column(Integer, nullable=False)
    formato: Mapped[str] = mapped_column(String(100), nullable=False)
    num_paginas_total: Mapped[int] = mapped_column(Integer, nullable=False)
    num_paginas_coloridas: Mapped[int] = mapped_column(Integer, nullable=False)
    valor_unitario: Mapped[Decimal] = mapped_column(nullable=False)
    valor_total: Mapped[Decimal] = mapped_column(nullable=False)
    prazo_entrega: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    obs: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[datetime] = mapped_column(nullable=False, server_default=func.now())
    data_pedido: Mapped[datetime | None]
    data_entrega: Mapped[datetime | None]
    solicitante: Mapped[str | None] = mapped_column(String(255))
    documento: Mapped[str | None] = mapped_column(String(100))
    editorial: Mapped[str | None] = mapped_column(String(255))
    tipo_produto: Mapped[str | None] = mapped_column(String(100))
    cor_miolo: Mapped[str | None] = mapped_column(String(100))
    papel_miolo: Mapped[str | None] = mapped_column(String(100))
    papel_capa: Mapped[str | None] = mapped_column(String(100))
    cor_capa: Mapped[str | None] = mapped_column(String(100))
    laminacao: Mapped[str | None] = mapped_column(String(100))
    acabamento: Mapped[str | None] = mapped_column(String(255))
    shrink: Mapped[str | None] = mapped_column(String(50))
    pagamento: Mapped[str | None] = mapped_column(String(255))
    frete: Mapped[str | None] = mapped_column(String(255))

    production_notes: Mapped[str | None] = mapped_column(Text)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    budget: Mapped["Budget | None"] = relationship(back_populates="order")

    @property
    def status_enum(self) -> OrderStatus:
        return OrderStatus(self.status)

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.numero_pedido} [{self.status}]>"


# Budget column -> order column, for the conversion snapshot
BUDGET_SNAPSHOT_FIELDS: dict[str, str] = {
    "titulo": "title",
    "tiragem": "tiragem",
    "formato": "formato",
    "total_pgs": "num_paginas_total",
    "pgs_colors": "num_paginas_coloridas",
    "preco_unitario": "valor_unitario",
    "preco_total": "valor_total",
    "data_pedido": "data_pedido",
    "data_entrega": "data_entrega",
    "solicitante": "solicitante",
    "documento": "documento",
    "editorial": "editorial",
    "tipo_produto": "tipo_produto",
    "cor_miolo": "cor_miolo",
    "papel_miolo": "papel_miolo",
    "papel_capa": "papel_capa",
    "cor_capa": "cor_capa",
    "laminacao": "laminacao",
    "acabamento": "acabamento",
    "shrink": "shrink",
    "pagamento": "pagamento",
    "frete": "frete",
}

# Nullable on the budget, NOT NULL on the order
BUDGET_SNAPSHOT_TEXT_FIELDS: dict[str, str] = {
    "prazo_producao": "prazo_entrega",
    "observacoes": "obs",
}
