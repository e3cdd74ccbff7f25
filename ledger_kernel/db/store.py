"""
Module: ledger_kernel.db.store
Responsibility: The entity store every engine talks to.  Wraps a single
    SQLAlchemy Session behind a small create/find/delete contract and owns
    the unit-of-work boundary (``atomic``).
Architecture position: Kernel > DB.  Imported by services/.  Knows nothing
    about specific models.

Invariants enforced:
    - One engine operation == one atomic scope.  The outermost ``atomic``
      block commits; nested blocks join it.
    - Any exception inside a scope rolls the session back before it
      propagates.  Rollback expires every loaded instance, so balance
      edits already applied in memory are discarded together with the
      pending inserts and deletes.
    - SQLAlchemy failures surface as StoreError, never as raw driver errors.
"""

from contextlib import contextmanager
from typing import Any, Generator, Iterable, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_kernel.exceptions import StoreError
from ledger_kernel.logging_config import LogContext, get_logger

logger = get_logger("db.store")

ModelT = TypeVar("ModelT")


class EntityStore:
    """
    Create/read/delete and query-by-predicate over persisted entities.

    Contract:
        Engines receive an EntityStore and never touch the Session directly
        for writes.  Predicates are SQLAlchemy column expressions, e.g.
        ``store.find(Account, Account.business_id == ctx.business_id)``.
    """

    def __init__(self, session: Session):
        self.session = session
        self._depth = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, model: type[ModelT], entity_id: UUID | None) -> ModelT | None:
        if entity_id is None:
            return None
        return self.session.get(model, entity_id)

    def find(
        self,
        model: type[ModelT],
        *criteria: Any,
        order_by: Iterable[Any] | Any | None = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        """Return all rows of ``model`` matching every criterion."""
        stmt = select(model).where(*criteria)
        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                stmt = stmt.order_by(*order_by)
            else:
                stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def find_one(self, model: type[ModelT], *criteria: Any) -> ModelT | None:
        """Return one matching row or None."""
        stmt = select(model).where(*criteria).limit(1)
        return self.session.scalars(stmt).first()

    def count(self, model: type, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(model).where(*criteria)
        return self.session.execute(stmt).scalar_one()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, model: type[ModelT], **fields: Any) -> ModelT:
        """
        Instantiate ``model`` and add it to the current unit of work.

        The session is flushed so the new row has its primary key and is
        visible to later ``find`` calls in the same scope.
        """
        instance = model(**fields)
        self.session.add(instance)
        self.session.flush()
        return instance

    def delete(self, instance: Any) -> None:
        self.session.delete(instance)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        """
        Commit the session.

        Raises:
            StoreError: If the commit fails; the session is rolled back first.
        """
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError("commit", str(exc)) from exc

    def rollback(self) -> None:
        self.session.rollback()

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @property
    def in_scope(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self, operation: str) -> Generator["EntityStore", None, None]:
        """
        Run a block as one unit of work.

        Usage:
            with store.atomic("transfer_funds"):
                source.current_balance -= amount
                target.current_balance += amount
                store.create(FundTransfer, ...)

        Raises:
            StoreError: If flushing or committing fails (after rollback).
        """
        if self._depth > 0:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        with LogContext.bind(operation=operation):
            try:
                yield self
                self.session.commit()
                logger.debug("unit_of_work_committed")
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.warning("unit_of_work_rolled_back", exc_info=True)
                raise StoreError(operation, str(exc)) from exc
            except Exception:
                self.session.rollback()
                logger.info("unit_of_work_rolled_back", exc_info=True)
                raise
            finally:
                self._depth = 0
