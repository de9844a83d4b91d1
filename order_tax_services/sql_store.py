"""
SqlTaxConfigurationStore -- TaxConfigurationStore over the SQLAlchemy ORM.

Responsibility:
    Persist configurations in the ``tax_configurations`` table and hand back
    frozen ``TaxConfiguration`` DTOs.

Architecture position:
    Services.  Uses ``order_tax_kernel.db.session_scope`` for transactions
    and ``TaxConfigurationModel.to_dto()/from_dto()`` for conversion.

Invariants enforced:
    - One transaction per operation; rollback on any exception.
    - Every query filters on ``organization_id``.
    - ``created_at`` / ``updated_at`` come from the injected clock, never
      from database defaults, so tie-breaks are reproducible in tests.

Failure modes:
    - ConfigurationNotFoundError for unknown or foreign ids.
    - SQLAlchemy OperationalError is translated to StoreUnavailableError.

The SQLAlchemy session is synchronous; each coroutine runs its transaction
to completion without suspending.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from order_tax_kernel.db.base import new_id
from order_tax_kernel.db.engine import session_scope
from order_tax_kernel.domain.clock import Clock, SystemClock
from order_tax_kernel.domain.values import (
    TaxConfiguration,
    TaxConfigurationDraft,
    TaxConfigurationPatch,
)
from order_tax_kernel.exceptions import ConfigurationNotFoundError, StoreUnavailableError
from order_tax_kernel.logging_config import get_logger
from order_tax_kernel.models.tax_configuration import TaxConfigurationModel
from order_tax_services.store import TaxConfigurationStore

logger = get_logger("services.sql_store")


class SqlTaxConfigurationStore(TaxConfigurationStore):
    """Relational store.  ``session_factory`` defaults to the kernel's global one."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def _row(
        self, session: Session, organization_id: str, configuration_id: str
    ) -> TaxConfigurationModel:
        row = session.execute(
            select(TaxConfigurationModel).where(
                TaxConfigurationModel.id == configuration_id,
                TaxConfigurationModel.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise ConfigurationNotFoundError(organization_id, configuration_id)
        return row

    async def list_configurations(self, organization_id: str) -> list[TaxConfiguration]:
        try:
            with session_scope(self._session_factory) as session:
                rows = session.execute(
                    select(TaxConfigurationModel)
                    .where(TaxConfigurationModel.organization_id == organization_id)
                    .order_by(TaxConfigurationModel.created_at, TaxConfigurationModel.id)
                ).scalars().all()
                return [row.to_dto() for row in rows]
        except OperationalError as exc:
            raise StoreUnavailableError("list_configurations", str(exc.orig)) from exc

    async def get_configuration(
        self, organization_id: str, configuration_id: str
    ) -> TaxConfiguration:
        try:
            with session_scope(self._session_factory) as session:
                return self._row(session, organization_id, configuration_id).to_dto()
        except OperationalError as exc:
            raise StoreUnavailableError("get_configuration", str(exc.orig)) from exc

    async def create_configuration(
        self, organization_id: str, draft: TaxConfigurationDraft
    ) -> TaxConfiguration:
        configuration = draft.to_configuration(new_id(), organization_id, self._clock.now())
        try:
            with session_scope(self._session_factory) as session:
                session.add(TaxConfigurationModel.from_dto(configuration))
        except OperationalError as exc:
            raise StoreUnavailableError("create_configuration", str(exc.orig)) from exc

        logger.info("tax_configuration_persisted", extra={
            "organization_id": organization_id,
            "configuration_id": configuration.id,
        })
        return configuration

    async def update_configuration(
        self,
        organization_id: str,
        configuration_id: str,
        patch: TaxConfigurationPatch,
    ) -> TaxConfiguration:
        try:
            with session_scope(self._session_factory) as session:
                row = self._row(session, organization_id, configuration_id)
                updated = patch.apply_to(row.to_dto(), self._clock.now())
                row.apply_dto(updated)
                return updated
        except OperationalError as exc:
            raise StoreUnavailableError("update_configuration", str(exc.orig)) from exc

    async def delete_configuration(self, organization_id: str, configuration_id: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.delete(self._row(session, organization_id, configuration_id))
        except OperationalError as exc:
            raise StoreUnavailableError("delete_configuration", str(exc.orig)) from exc
