"""
Module: printshop_kernel.models.budget
Responsibility: ORM persistence for budgets (price quotes), the documents
    driven through the DRAFT -> SUBMITTED -> APPROVED -> CONVERTED lifecycle.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/statuses.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Status is one of the BudgetStatus values (ck_budget_valid_status).
    - numero_pedido, once assigned, is unique across budgets.
    - Optimistic locking: ``version`` is the mapper's version_id_col, so
      every UPDATE carries ``WHERE version = :seen``.  A lost race surfaces
      as StaleDataError, which services translate to ConflictDetectedError.
    - Status-governing fields (status, *_at, *_by_id, numero_pedido) are
      written only by the workflow executor and conversion orchestrator.

Failure modes:
    - IntegrityError on a dangling client/center foreign key.
    - StaleDataError on a concurrent update of the same row.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printshop_kernel.db.base import Identifier, TrackedBase
from printshop_kernel.domain.statuses import BudgetStatus

if TYPE_CHECKING:
    from printshop_kernel.models.order import Order
    from printshop_kernel.models.party import Client, ProductionCenter

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in BudgetStatus)


class Budget(TrackedBase):
    """
    A price quote for a print job.

    Contract:
        Created in DRAFT.  Moves only through the transitions declared in
        ``printshop_kernel.domain.budget_workflow``.  Never deleted by the
        engine.

    Guarantees:
        - status == CONVERTED iff ``order`` is not None.
        - status == REJECTED implies rejected_at and rejected_by_id are set.
    """

    __tablename__ = "budgets"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_budget_valid_status",
        ),
        Index("idx_budget_status", "status"),
        Index("idx_budget_client", "client_id"),
        Index("idx_budget_center", "center_id"),
        Index("idx_budget_data_pedido", "data_pedido"),
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BudgetStatus.DRAFT.value,
    )

    numero_pedido: Mapped[str | None] = mapped_column(String(50), unique=True)

    client_id: Mapped[int | None] = mapped_column(
        Identifier,
        ForeignKey("clients.id", ondelete="SET NULL"),
    )
    center_id: Mapped[int | None] = mapped_column(
        Identifier,
        ForeignKey("production_centers.id", ondelete="SET NULL"),
    )

    # Quoted fields
    titulo: Mapped[str] = mapped_column(String(500), nullable=False)
    tiragem: Mapped[int] = mapped_column(Integer, nullable=False)
    formato: Mapped[str] = mapped_column(String(100), nullable=False)
    total_pgs: Mapped[int] = mapped_column(Integer, nullable=False)
    pgs_colors: Mapped[int] = mapped_column(Integer, nullable=False)
    preco_unitario: Mapped[Decimal] = mapped_column(nullable=False)
    preco_total: Mapped[Decimal] = mapped_column(nullable=False)
    prazo_producao: Mapped[str | None] = mapped_column(String(100))
    data_pedido: Mapped[datetime] = mapped_column(
        nullable=False,
        server_default=func.now(),
    )
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
    observacoes: Mapped[str | None] = mapped_column(Text)

    # Lifecycle audit
    submitted_at: Mapped[datetime | None]
    approved_at: Mapped[datetime | None]
    approved_by_id: Mapped[int | None] = mapped_column(Identifier)
    rejected_at: Mapped[datetime | None]
    rejected_by_id: Mapped[int | None] = mapped_column(Identifier)
    converted_at: Mapped[datetime | None]

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    client: Mapped["Client | None"] = relationship()
    center: Mapped["ProductionCenter | None"] = relationship()
    order: Mapped["Order | None"] = relationship(
        back_populates="budget",
        uselist=False,
    )

    @property
    def status_enum(self) -> BudgetStatus:
        return BudgetStatus(self.status)

    def __repr__(self) -> str:
        return f"<Budget {self.id} [{self.status}] {self.numero_pedido or '-'}>"


# Columns copied verbatim into an order at conversion
QUOTED_FIELDS: tuple[str, ...] = (
    "titulo",
    "tiragem",
    "formato",
    "total_pgs",
    "pgs_colors",
    "preco_unitario",
    "preco_total",
    "prazo_producao",
    "data_pedido",
    "data_entrega",
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
