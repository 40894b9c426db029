"""
BaseService -- shared plumbing for the budget and order persistence services.

Kernel services receive a ``Session`` and only ever ``flush()``; the
workflow services in ``printshop_services`` own commit and rollback.
Subclasses name their model and the not-found error raised by ``load``.
"""

from abc import ABC
from typing import Callable, ClassVar, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop_kernel.db.base import Base
from printshop_kernel.domain.clock import Clock, SystemClock
from printshop_kernel.exceptions import CenterNotFoundError, ClientNotFoundError
from printshop_kernel.models.party import Client, ProductionCenter

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    model: ClassVar[type[Base]]
    not_found: ClassVar[Callable[[int], Exception]]

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def load(self, entity_id: int, *, for_update: bool = False) -> ModelType:
        """
        Load the ORM row by id.

        With ``for_update`` the row stays locked until the caller's
        transaction ends and any identity-map copy is refreshed.
        """
        stmt = select(self.model).where(self.model.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise self.not_found(entity_id)
        return row

    def _check_parties(self, client_id: int | None, center_id: int | None) -> None:
        """Raise if a given client or production center id does not exist."""
        if client_id is not None and self.session.get(Client, client_id) is None:
            raise ClientNotFoundError(client_id)
        if center_id is not None and self.session.get(ProductionCenter, center_id) is None:
            raise CenterNotFoundError(center_id)
