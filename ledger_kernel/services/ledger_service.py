"""
LedgerService -- keeps account running balances consistent with the
transactions and transfers recorded against them.

Responsibility:
    Every mutation that moves money updates the affected Account balances
    in the same unit of work as the record change, so that for every
    account

        current_balance == opening_balance
                           + sum(signed transaction amounts)
                           + sum(incoming transfers) - sum(outgoing transfers)

    holds after each committed operation.

Invariants enforced:
    - Balances are adjusted by deltas, never recomputed from history.
    - Income adds, expense subtracts.  Amounts are always > 0; the sign
      comes from the transaction type.
    - Validation (amounts, self transfer, funds, ownership) runs before the
      unit of work opens.  A failed commit rolls back the balance edits
      together with the record changes.

Failure modes:
    - ValidationError: non-positive amount, unknown type, self transfer,
      empty name, unsupported currency, naive datetime.
    - NoActiveBusinessError: context has no (existing) business.
    - EntityNotFoundError: referenced record missing or in another business.
    - InsufficientFundsError: transfer larger than the source balance.
    - AccountReferencedError: deleting an account that has transactions.
    - StoreError: persistence failure, already rolled back.
"""

from __future__ import annotations

from datetime import UTC, date as date_type, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_

from ledger_kernel.db.store import EntityStore
from ledger_kernel.db.types import ZERO, require_positive, to_money
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.context import LedgerContext
from ledger_kernel.domain.dtos import DateRange
from ledger_kernel.exceptions import AccountReferencedError, InsufficientFundsError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.category import Category, PaymentMode
from ledger_kernel.models.fund_transfer import FundTransfer
from ledger_kernel.models.transaction import Transaction, TransactionType
from ledger_kernel.services import activity_service as actions
from ledger_kernel.services.activity_service import ActivityService
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.business_service import validate_currency

logger = get_logger("services.ledger")


def _parse_type(value: TransactionType | str) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType.parse(str(value))
    except ValueError:
        raise ValidationError(
            f"Transaction type must be income or expense, got {value!r}",
            field="type",
            value=value,
        ) from None


class LedgerService(BaseService):
    """
    The ledger engine.

    Every method takes an explicit LedgerContext naming the business it
    operates on.  Returned ORM objects stay usable after the call (sessions
    do not expire on commit).
    """

    def __init__(
        self,
        store: EntityStore,
        clock: Clock | None = None,
        activity: ActivityService | None = None,
    ):
        super().__init__(store, clock)
        self.activity = activity or ActivityService(store, self.clock)

    def _instant(self, value: datetime | date_type | None) -> datetime:
        if value is None:
            return self.clock.now()
        if isinstance(value, datetime):
            if value.tzinfo is None:
                raise ValidationError(
                    "date must be timezone-aware", field="date", value=value
                )
            return value
        return datetime(value.year, value.month, value.day, tzinfo=UTC)

    @staticmethod
    def _range_criteria(date_range: DateRange | None) -> list:
        criteria = []
        if date_range is not None:
            if date_range.start is not None:
                criteria.append(Transaction.date >= date_range.start)
            if date_range.end is not None:
                criteria.append(Transaction.date < date_range.end)
        return criteria

    # ==================================================================
    # Transactions
    # ==================================================================

    def get_transaction(self, ctx: LedgerContext, transaction_id: UUID) -> Transaction:
        return self._owned(Transaction, transaction_id, ctx)

    def list_transactions(
        self,
        ctx: LedgerContext,
        date_range: DateRange | None = None,
        account_id: UUID | None = None,
        category_id: UUID | None = None,
    ) -> list[Transaction]:
        """Transactions of the business, newest date first."""
        business = self._business(ctx)
        criteria = [Transaction.business_id == business.id]
        criteria.extend(self._range_criteria(date_range))
        if account_id is not None:
            criteria.append(Transaction.account_id == account_id)
        if category_id is not None:
            criteria.append(Transaction.category_id == category_id)
        return self.store.find(
            Transaction,
            *criteria,
            order_by=(Transaction.date.desc(), Transaction.created_at.desc()),
        )

    def create_transaction(
        self,
        ctx: LedgerContext,
        amount: Decimal | int | str,
        type: TransactionType | str,
        account_id: UUID,
        category_id: UUID,
        payment_mode_id: UUID | None = None,
        notes: str | None = None,
        date: datetime | date_type | None = None,
        vendor: str | None = None,
        reference: str | None = None,
    ) -> Transaction:
        """
        Record an income or expense and apply it to the account balance.

        Args:
            ctx: Business and actor for the operation.
            amount: Positive amount.
            type: ``income`` or ``expense`` (case-insensitive).
            account_id: Account the money moves in or out of.
            category_id: Category of the transaction.
            payment_mode_id: Optional payment mode.
            notes: Free text.
            date: User-chosen instant; defaults to now.
            vendor: Optional counterparty name.
            reference: Optional external reference number.

        Returns:
            The persisted Transaction.

        Raises:
            ValidationError: Bad amount, type or date, or no business.
            EntityNotFoundError: Unknown account, category or payment mode.
            StoreError: Persistence failed; balance unchanged.
        """
        value = require_positive(amount)
        txn_type = _parse_type(type)
        when = self._instant(date)

        with self._bind(ctx):
            business = self._business(ctx)
            account = self._owned(Account, account_id, ctx)
            category = self._owned(Category, category_id, ctx)
            payment_mode = (
                self._owned(PaymentMode, payment_mode_id, ctx)
                if payment_mode_id is not None
                else None
            )

            with self.store.atomic("create_transaction"):
                now = self.clock.now()
                txn = self.store.create(
                    Transaction,
                    amount=value,
                    type=txn_type.value,
                    date=when,
                    notes=notes,
                    vendor=vendor,
                    reference=reference,
                    created_by=ctx.actor,
                    business_id=business.id,
                    account_id=account.id,
                    category_id=category.id,
                    payment_mode_id=payment_mode.id if payment_mode else None,
                    created_at=now,
                    updated_at=now,
                )
                account.current_balance += txn_type.signed(value)
                account.updated_at = now
                self.activity.record(
                    business.id,
                    actions.TRANSACTION_CREATED,
                    f"{txn_type.value.capitalize()} of {value} added to {account.name}",
                )

            logger.info(
                "transaction_created",
                extra={
                    "transaction_id": str(txn.id),
                    "account_id": str(account.id),
                    "amount": value,
                    "transaction_type": txn_type.value,
                },
            )
        return txn

    def update_transaction(
        self,
        ctx: LedgerContext,
        transaction_id: UUID,
        amount: Decimal | int | str,
        type: TransactionType | str,
        account_id: UUID,
        category_id: UUID,
        payment_mode_id: UUID | None = None,
        notes: str | None = None,
        date: datetime | date_type | None = None,
    ) -> Transaction:
        """
        Replace a transaction's values and move balances accordingly.

        The old effect is reversed on the original account using the
        original amount and type, then the new effect is applied to the
        (possibly different) new account.  Both happen in one unit of work.
        ``date=None`` keeps the existing date.
        """
        value = require_positive(amount)
        txn_type = _parse_type(type)

        with self._bind(ctx):
            self._business(ctx)
            txn = self._owned(Transaction, transaction_id, ctx)
            old_account = txn.account
            new_account = self._owned(Account, account_id, ctx)
            category = self._owned(Category, category_id, ctx)
            payment_mode = (
                self._owned(PaymentMode, payment_mode_id, ctx)
                if payment_mode_id is not None
                else None
            )
            when = self._instant(date) if date is not None else txn.date
            old_effect = txn.signed_amount

            with self.store.atomic("update_transaction"):
                now = self.clock.now()
                old_account.current_balance -= old_effect
                old_account.updated_at = now
                new_account.current_balance += txn_type.signed(value)
                new_account.updated_at = now

                txn.amount = value
                txn.type = txn_type.value
                txn.account_id = new_account.id
                txn.account = new_account
                txn.category_id = category.id
                txn.category = category
                txn.payment_mode_id = payment_mode.id if payment_mode else None
                txn.payment_mode = payment_mode
                txn.notes = notes
                txn.date = when
                txn.updated_at = now
                self.activity.record(
                    txn.business_id,
                    actions.TRANSACTION_UPDATED,
                    f"{txn_type.value.capitalize()} of {value} updated on {new_account.name}",
                )

            logger.info(
                "transaction_updated",
                extra={
                    "transaction_id": str(txn.id),
                    "old_account_id": str(old_account.id),
                    "new_account_id": str(new_account.id),
                    "old_effect": old_effect,
                    "new_effect": txn_type.signed(value),
                },
            )
        return txn

    def delete_transaction(self, ctx: LedgerContext, transaction_id: UUID) -> None:
        """Reverse a transaction's effect on its account and remove it."""
        with self._bind(ctx):
            self._business(ctx)
            txn = self._owned(Transaction, transaction_id, ctx)
            account = txn.account
            effect = txn.signed_amount
            description = f"{txn.transaction_type.value.capitalize()} of {txn.amount}"

            with self.store.atomic("delete_transaction"):
                now = self.clock.now()
                account.current_balance -= effect
                account.updated_at = now
                self.activity.record(
                    txn.business_id,
                    actions.TRANSACTION_DELETED,
                    f"{description} removed from {account.name}",
                )
                self.store.delete(txn)

            logger.info(
                "transaction_deleted",
                extra={
                    "transaction_id": str(transaction_id),
                    "account_id": str(account.id),
                    "reversed_effect": effect,
                },
            )

    # ==================================================================
    # Accounts
    # ==================================================================

    def get_account(self, ctx: LedgerContext, account_id: UUID) -> Account:
        return self._owned(Account, account_id, ctx)

    def list_accounts(self, ctx: LedgerContext) -> list[Account]:
        business = self._business(ctx)
        return self.store.find(
            Account, Account.business_id == business.id, order_by=(Account.name,)
        )

    def create_account(
        self,
        ctx: LedgerContext,
        name: str,
        currency: str | None = None,
        opening_balance: Decimal | int | str = ZERO,
    ) -> Account:
        """
        Open an account whose running balance starts at its opening balance.

        ``currency`` defaults to the business currency.  The opening balance
        may be negative (e.g. a credit card carrying debt).
        """
        name = self._require_name(name)
        opening = to_money(opening_balance, "opening_balance")

        with self._bind(ctx):
            business = self._business(ctx)
            code = validate_currency(currency or business.currency)

            with self.store.atomic("create_account"):
                now = self.clock.now()
                account = self.store.create(
                    Account,
                    name=name,
                    currency=code,
                    opening_balance=opening,
                    current_balance=opening,
                    business_id=business.id,
                    created_at=now,
                    updated_at=now,
                )
                self.activity.record(
                    business.id,
                    actions.ACCOUNT_CREATED,
                    f"Account '{name}' created with opening balance {opening}",
                )

            logger.info(
                "account_created",
                extra={"account_id": str(account.id), "opening_balance": opening},
            )
        return account

    def update_account(
        self,
        ctx: LedgerContext,
        account_id: UUID,
        name: str | None = None,
        currency: str | None = None,
        opening_balance: Decimal | int | str | None = None,
    ) -> Account:
        """
        Rename, re-denominate or re-base an account.

        A new opening balance shifts the running balance by the difference
        (``current += new_opening - old_opening``) rather than replaying
        history.
        """
        new_name = self._require_name(name) if name is not None else None
        new_opening = (
            to_money(opening_balance, "opening_balance") if opening_balance is not None else None
        )

        with self._bind(ctx):
            account = self._owned(Account, account_id, ctx)
            new_currency = validate_currency(currency) if currency is not None else None
            delta = ZERO if new_opening is None else new_opening - account.opening_balance

            with self.store.atomic("update_account"):
                if new_name is not None:
                    account.name = new_name
                if new_currency is not None:
                    account.currency = new_currency
                if new_opening is not None:
                    account.opening_balance = new_opening
                    account.current_balance += delta
                account.updated_at = self.clock.now()
                self.activity.record(
                    account.business_id,
                    actions.ACCOUNT_UPDATED,
                    f"Account '{account.name}' updated",
                )

            logger.info(
                "account_updated",
                extra={"account_id": str(account.id), "balance_delta": delta},
            )
        return account

    def delete_account(self, ctx: LedgerContext, account_id: UUID) -> None:
        """
        Delete an account that has no transactions.

        Fund transfers do not block deletion.  Their reference to this
        account is cleared and the transfer records are kept as history.

        Raises:
            AccountReferencedError: If the account has any transaction.
        """
        with self._bind(ctx):
            account = self._owned(Account, account_id, ctx)
            txn_count = self.store.count(Transaction, Transaction.account_id == account.id)
            if txn_count:
                logger.warning(
                    "account_delete_blocked",
                    extra={"account_id": str(account.id), "transaction_count": txn_count},
                )
                raise AccountReferencedError(account.id, txn_count)

            transfers = self.store.find(
                FundTransfer,
                or_(
                    FundTransfer.from_account_id == account.id,
                    FundTransfer.to_account_id == account.id,
                ),
            )
            name = account.name

            with self.store.atomic("delete_account"):
                for transfer in transfers:
                    if transfer.from_account_id == account.id:
                        transfer.from_account_id = None
                        transfer.from_account = None
                    if transfer.to_account_id == account.id:
                        transfer.to_account_id = None
                        transfer.to_account = None
                self.activity.record(
                    account.business_id, actions.ACCOUNT_DELETED, f"Account '{name}' deleted"
                )
                self.store.delete(account)

            if transfers:
                logger.warning(
                    "account_deleted_with_transfers",
                    extra={"account_id": str(account_id), "transfer_count": len(transfers)},
                )
            logger.info("account_deleted", extra={"account_id": str(account_id)})

    # ==================================================================
    # Transfers
    # ==================================================================

    def list_fund_transfers(
        self, ctx: LedgerContext, account_id: UUID | None = None
    ) -> list[FundTransfer]:
        """Transfers touching any account of the business, newest first."""
        if account_id is not None:
            account_ids = [self._owned(Account, account_id, ctx).id]
        else:
            account_ids = [a.id for a in self.list_accounts(ctx)]
        if not account_ids:
            return []
        return self.store.find(
            FundTransfer,
            or_(
                FundTransfer.from_account_id.in_(account_ids),
                FundTransfer.to_account_id.in_(account_ids),
            ),
            order_by=(FundTransfer.date.desc(), FundTransfer.created_at.desc()),
        )

    def transfer_funds(
        self,
        ctx: LedgerContext,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Decimal | int | str,
        notes: str | None = None,
        date: datetime | date_type | None = None,
    ) -> FundTransfer:
        """
        Move money between two accounts of the business.

        Raises:
            ValidationError: Same source and destination, or amount <= 0.
            InsufficientFundsError: Source balance lower than amount.
            StoreError: Persistence failed; both balances unchanged.
        """
        if from_account_id == to_account_id:
            raise ValidationError(
                "Cannot transfer to the same account",
                field="to_account_id",
                value=to_account_id,
            )
        value = require_positive(amount)
        when = self._instant(date)

        with self._bind(ctx):
            business = self._business(ctx)
            source = self._owned(Account, from_account_id, ctx)
            target = self._owned(Account, to_account_id, ctx)

            if source.current_balance < value:
                logger.info(
                    "transfer_rejected",
                    extra={
                        "from_account_id": str(source.id),
                        "available": source.current_balance,
                        "requested": value,
                    },
                )
                raise InsufficientFundsError(
                    source.id, source.name, source.current_balance, value
                )

            with self.store.atomic("transfer_funds"):
                now = self.clock.now()
                transfer = self.store.create(
                    FundTransfer,
                    amount=value,
                    notes=notes,
                    date=when,
                    from_account_id=source.id,
                    to_account_id=target.id,
                    created_at=now,
                    updated_at=now,
                )
                source.current_balance -= value
                source.updated_at = now
                target.current_balance += value
                target.updated_at = now
                self.activity.record(
                    business.id,
                    actions.FUND_TRANSFER,
                    f"Transferred {value} from {source.name} to {target.name}",
                )

            logger.info(
                "transfer_completed",
                extra={
                    "transfer_id": str(transfer.id),
                    "from_account_id": str(source.id),
                    "to_account_id": str(target.id),
                    "amount": value,
                },
            )
        return transfer

    # ==================================================================
    # Totals
    # ==================================================================

    def get_total_balance(self, ctx: LedgerContext) -> Decimal:
        """Sum of current balances over all accounts of the business."""
        return sum((a.current_balance for a in self.list_accounts(ctx)), ZERO)

    def _total(
        self, ctx: LedgerContext, txn_type: TransactionType, date_range: DateRange | None
    ) -> Decimal:
        business = self._business(ctx)
        rows = self.store.find(
            Transaction,
            Transaction.business_id == business.id,
            Transaction.type == txn_type.value,
            *self._range_criteria(date_range),
        )
        return sum((t.amount for t in rows), ZERO)

    def get_total_income(self, ctx: LedgerContext, date_range: DateRange | None = None) -> Decimal:
        return self._total(ctx, TransactionType.INCOME, date_range)

    def get_total_expense(self, ctx: LedgerContext, date_range: DateRange | None = None) -> Decimal:
        return self._total(ctx, TransactionType.EXPENSE, date_range)

    def get_net_income(self, ctx: LedgerContext, date_range: DateRange | None = None) -> Decimal:
        """Income minus expense over ``[start, end)``; all time when omitted."""
        return self.get_total_income(ctx, date_range) - self.get_total_expense(ctx, date_range)
