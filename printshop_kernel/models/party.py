"""
Module: printshop_kernel.models.party
Responsibility: ORM persistence for the two reference entities a budget is
    associated with: the client who ordered the job and the production
    center that prints it.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are never deleted by the workflow engine; retiring a client or
      center sets ``active`` to False.  Conversion refuses inactive
      associations (ValidationFailedError upstream).

Failure modes:
    - IntegrityError on a foreign key pointing at a missing row.
"""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from printshop_kernel.db.base import TrackedBase


class Client(TrackedBase):
    """Customer that budgets and orders are billed to."""

    __tablename__ = "clients"
    __table_args__ = (
        Index("idx_client_active", "active"),
        Index("idx_client_cnpj_cpf", "cnpj_cpf"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cnpj_cpf: Mapped[str | None] = mapped_column(String(20))
    email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(50))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Client {self.id}: {self.name}>"


class ProductionCenter(TrackedBase):
    """Facility (in-house press or partner printer) that produces an order."""

    __tablename__ = "production_centers"
    __table_args__ = (Index("idx_center_active", "active"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    center_type: Mapped[str | None] = mapped_column(String(50))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<ProductionCenter {self.id}: {self.name}>"
