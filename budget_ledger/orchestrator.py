"""
Main Orchestrator for Budget Ledger

This module ties together all the components and exposes every ledger
operation to the outer layer (dashboard, HTTP handlers, scripts).

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every operation runs inside one store scope; writes inside one
  transaction, so a failure leaves nothing half-applied
- The clock is read here and passed down; services never read it
- Every state change is audited, every rejection is audited, and the
  original exception always reaches the caller
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, Optional
from uuid import UUID

from budget_ledger.audit import AuditLogger, configure_logging, create_correlation_id
from budget_ledger.config import Settings, get_settings
from budget_ledger.models.audit import AuditEventBuilder, AuditEventType
from budget_ledger.models.ledger import (
    Category,
    Month,
    PiggyBank,
    PiggyBankEntry,
    PlannedExpense,
    Transaction,
    Week,
)
from budget_ledger.models.views import (
    CashReturnResult,
    CurrentSummary,
    MonthCloseResult,
    PiggyBankSummary,
    SafetyWithdrawalResult,
    WeekCloseResult,
)
from budget_ledger.queries import SummaryAggregator
from budget_ledger.services import (
    CashReconciler,
    ConflictError,
    EntryService,
    LedgerStoreInterface,
    LifecycleManager,
    NotFoundError,
    SQLiteLedgerStore,
)
from budget_ledger.services.entries import require_transaction
from budget_ledger.validation import ValidationError

_REJECTIONS = (ValidationError, NotFoundError, ConflictError)


class BudgetLedger:
    """
    Facade over the ledger services.

    Flow of a write:
    1. Open a store transaction (BEGIN IMMEDIATE)
    2. Run the service with the current time
    3. Commit, then write the audit event
    On any exception the transaction is rolled back, the rejection or
    error is audited, and the exception propagates unchanged.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or datetime.now
        self._app_settings = (settings or get_settings()).app

        self._reconciler = CashReconciler()
        self._lifecycle = LifecycleManager(self._reconciler)
        self._entries = EntryService()
        self._summary = SummaryAggregator(self._reconciler)

    def _now(self) -> datetime:
        # Stored timestamps have second precision
        return self._clock().replace(microsecond=0)

    @contextmanager
    def _audited(self, operation: str, correlation_id: UUID) -> Iterator[None]:
        try:
            yield
        except _REJECTIONS as e:
            self._audit.log_rejected(operation, e, correlation_id)
            raise
        except Exception as e:
            self._audit.log_error(operation, e, correlation_id)
            raise

    def _read(self, operation: str, fn: Callable[..., Any]) -> Any:
        with self._audited(operation, create_correlation_id()):
            with self._store.connection() as repo:
                return fn(repo)

    # ------------------------------------------------------------------
    # Health and reference data
    # ------------------------------------------------------------------

    def health(self) -> dict[str, bool]:
        """Round-trip to the store."""
        return {"ok": self._read("health", lambda repo: repo.ping())}

    def list_categories(self, include_inactive: bool = False) -> list[Category]:
        return self._read(
            "list_categories",
            lambda repo: repo.list_categories(include_inactive=include_inactive),
        )

    def create_category(self, name: str) -> Category:
        cid = create_correlation_id()
        with self._audited("create_category", cid):
            with self._store.transaction() as repo:
                category = self._entries.create_category(repo, name)

        self._audit.log(AuditEventBuilder.reference_changed(
            AuditEventType.CATEGORY_CHANGED, "category", category.id, "created", cid
        ))
        return category

    def rename_category(self, category_id, name: str) -> Category:
        cid = create_correlation_id()
        with self._audited("rename_category", cid):
            with self._store.transaction() as repo:
                category = self._entries.rename_category(repo, category_id, name)

        self._audit.log(AuditEventBuilder.reference_changed(
            AuditEventType.CATEGORY_CHANGED, "category", category.id, "renamed", cid
        ))
        return category

    def deactivate_category(self, category_id) -> Category:
        cid = create_correlation_id()
        with self._audited("deactivate_category", cid):
            with self._store.transaction() as repo:
                category = self._entries.deactivate_category(repo, category_id)

        self._audit.log(AuditEventBuilder.reference_changed(
            AuditEventType.CATEGORY_CHANGED, "category", category.id, "deactivated", cid
        ))
        return category

    def list_planned_expenses(self, include_inactive: bool = False) -> list[PlannedExpense]:
        return self._read(
            "list_planned_expenses",
            lambda repo: repo.list_planned_expenses(include_inactive=include_inactive),
        )

    def create_planned_expense(
        self,
        name: str,
        amount,
        frequency,
        next_due_date,
        attribution=None,
        category_id=None,
    ) -> PlannedExpense:
        cid = create_correlation_id()
        with self._audited("create_planned_expense", cid):
            with self._store.transaction() as repo:
                planned = self._entries.create_planned_expense(
                    repo,
                    name=name,
                    amount=amount,
                    frequency=frequency,
                    next_due_date=next_due_date,
                    attribution=attribution,
                    category_id=category_id,
                )

        self._audit.log(AuditEventBuilder.reference_changed(
            AuditEventType.PLANNED_EXPENSE_CHANGED, "planned_expense", planned.id, "created", cid
        ))
        return planned

    def deactivate_planned_expense(self, planned_id) -> PlannedExpense:
        cid = create_correlation_id()
        with self._audited("deactivate_planned_expense", cid):
            with self._store.transaction() as repo:
                planned = self._entries.deactivate_planned_expense(repo, planned_id)

        self._audit.log(AuditEventBuilder.reference_changed(
            AuditEventType.PLANNED_EXPENSE_CHANGED, "planned_expense", planned.id, "deactivated", cid
        ))
        return planned

    # ------------------------------------------------------------------
    # Current state
    # ------------------------------------------------------------------

    def list_months(self) -> list[Month]:
        return self._read("list_months", lambda repo: repo.list_months())

    def get_current_month(self) -> Optional[Month]:
        return self._read("get_current_month", lambda repo: repo.get_open_month())

    def get_current_week(self) -> Optional[Week]:
        """
        The OPEN month's week containing today (or its last week).

        Resolving the week records its cash withdrawal if missing.
        """
        cid = create_correlation_id()
        today = self._now().date()
        with self._audited("get_current_week", cid):
            with self._store.transaction() as repo:
                _, week, withdrawal = self._summary.current_week(repo, today)

        self._log_withdrawal(withdrawal, cid)
        return week

    def get_current_summary(self) -> Optional[CurrentSummary]:
        """Dashboard view of the OPEN month, or None when no month is open."""
        cid = create_correlation_id()
        today = self._now().date()
        with self._audited("get_current_summary", cid):
            with self._store.transaction() as repo:
                month, week, withdrawal = self._summary.current_week(repo, today)
                if month is None:
                    return None
                summary = self._summary.summarize(repo, month, week, today)

        self._log_withdrawal(withdrawal, cid)
        return summary

    def _log_withdrawal(self, withdrawal: Optional[Transaction], cid: UUID) -> None:
        if withdrawal is not None and withdrawal.week_id is not None:
            self._audit.log(AuditEventBuilder.cash_withdrawal_recorded(
                withdrawal.week_id, withdrawal.amount, cid
            ))

    # ------------------------------------------------------------------
    # Month lifecycle
    # ------------------------------------------------------------------

    def start_month(
        self,
        income,
        saving_goal,
        weekly_budget,
        start_date=None,
    ) -> tuple[Month, list[Week]]:
        cid = create_correlation_id()
        today = self._now().date()
        with self._audited("start_month", cid):
            with self._store.transaction() as repo:
                month, weeks = self._lifecycle.start_month(
                    repo,
                    income=income,
                    saving_goal=saving_goal,
                    weekly_budget=weekly_budget,
                    today=today,
                    start_date=start_date,
                )

        self._audit.log(AuditEventBuilder.month_started(
            month.id, month.period_key, len(weeks), cid
        ))
        return month, weeks

    def update_month(
        self,
        month_id,
        income=None,
        saving_goal=None,
        weekly_budget=None,
    ) -> Month:
        cid = create_correlation_id()
        with self._audited("update_month", cid):
            with self._store.transaction() as repo:
                month, changes, open_weeks_updated = self._lifecycle.update_month(
                    repo,
                    month_id,
                    income=income,
                    saving_goal=saving_goal,
                    weekly_budget=weekly_budget,
                )

        self._audit.log(AuditEventBuilder.month_updated(
            month.id, changes, open_weeks_updated, cid
        ))
        return month

    def close_month(self, month_id) -> MonthCloseResult:
        cid = create_correlation_id()
        with self._audited("close_month", cid):
            with self._store.transaction() as repo:
                result = self._lifecycle.close_month(repo, month_id, self._now())

        self._audit.log(AuditEventBuilder.month_closed(
            result.month.id, result.remainder_cents, result.consolidated_cents, cid
        ))
        return result

    def delete_month(self, month_id) -> Month:
        cid = create_correlation_id()
        with self._audited("delete_month", cid):
            with self._store.transaction() as repo:
                month = self._lifecycle.delete_month(repo, month_id)

        self._audit.log(AuditEventBuilder.month_deleted(month.id, cid))
        return month

    # ------------------------------------------------------------------
    # Week lifecycle and pocket cash
    # ------------------------------------------------------------------

    def close_week(
        self,
        week_id,
        piggy_two=None,
        piggy_normal=None,
        return_to_bank=None,
        note: Optional[str] = None,
    ) -> WeekCloseResult:
        cid = create_correlation_id()
        with self._audited("close_week", cid):
            with self._store.transaction() as repo:
                result = self._lifecycle.close_week(
                    repo,
                    week_id,
                    self._now(),
                    piggy_two=piggy_two,
                    piggy_normal=piggy_normal,
                    return_to_bank=return_to_bank,
                    note=note,
                )

        self._audit.log(AuditEventBuilder.week_closed(
            result.week.id,
            {
                "piggy_two_cents": result.piggy_two_cents,
                "piggy_normal_cents": result.piggy_normal_cents,
                "returned_to_bank_cents": result.returned_to_bank_cents,
            },
            cid,
        ))
        return result

    def cash_return(self, week_id, amount, note: Optional[str] = None) -> CashReturnResult:
        cid = create_correlation_id()
        with self._audited("cash_return", cid):
            with self._store.transaction() as repo:
                result = self._lifecycle.cash_return(repo, week_id, amount, self._now(), note=note)

        self._audit.log(AuditEventBuilder.cash_returned(
            result.week.id, result.transaction.amount, cid
        ))
        return result

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def create_transaction(
        self,
        amount,
        type="EXPENSE",
        month_id=None,
        week_id=None,
        category_id=None,
        attribution=None,
        payment_method=None,
        concept: Optional[str] = None,
        note: Optional[str] = None,
        date_time=None,
    ) -> Transaction:
        cid = create_correlation_id()
        with self._audited("create_transaction", cid):
            with self._store.transaction() as repo:
                tx = self._entries.create_transaction(
                    repo,
                    amount=amount,
                    now=self._now(),
                    type=type,
                    month_id=month_id,
                    week_id=week_id,
                    category_id=category_id,
                    attribution=attribution,
                    payment_method=payment_method,
                    concept=concept,
                    note=note,
                    date_time=date_time,
                )

        self._audit.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_CREATED, tx.id, tx.type.value, tx.amount, cid
        ))
        return tx

    def list_transactions(self, month_id) -> list[Transaction]:
        return self._read(
            "list_transactions",
            lambda repo: self._entries.list_transactions(repo, month_id),
        )

    def get_transaction(self, transaction_id) -> Transaction:
        return self._read(
            "get_transaction",
            lambda repo: require_transaction(repo, transaction_id),
        )

    def update_transaction(self, transaction_id, **fields) -> Transaction:
        """
        Edit a transaction.

        Accepts amount, category_id, attribution, payment_method, concept,
        note and date_time.
        """
        cid = create_correlation_id()
        with self._audited("update_transaction", cid):
            with self._store.transaction() as repo:
                tx = self._entries.update_transaction(repo, transaction_id, **fields)

        self._audit.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_UPDATED, tx.id, tx.type.value, tx.amount, cid
        ))
        return tx

    def delete_transaction(self, transaction_id) -> Transaction:
        cid = create_correlation_id()
        with self._audited("delete_transaction", cid):
            with self._store.transaction() as repo:
                tx = self._entries.delete_transaction(repo, transaction_id)

        self._audit.log(AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_DELETED, tx.id, tx.type.value, tx.amount, cid
        ))
        return tx

    def record_extra_income(
        self,
        month_id,
        amount,
        attribution=None,
        concept: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Transaction:
        cid = create_correlation_id()
        with self._audited("record_extra_income", cid):
            with self._store.transaction() as repo:
                tx = self._reconciler.record_extra_income(
                    repo,
                    month_id,
                    amount,
                    self._now(),
                    attribution=attribution,
                    concept=concept,
                    note=note,
                    default_concept=self._app_settings.extra_income_concept,
                )

        self._audit.log(AuditEventBuilder.transaction_changed(
            AuditEventType.EXTRA_INCOME_RECORDED, tx.id, tx.type.value, tx.amount, cid
        ))
        return tx

    # ------------------------------------------------------------------
    # Piggy banks
    # ------------------------------------------------------------------

    def list_piggy_banks(self) -> list[PiggyBank]:
        return self._read("list_piggy_banks", lambda repo: repo.list_piggy_banks())

    def piggy_bank_summary(self) -> PiggyBankSummary:
        return self._read("piggy_bank_summary", self._entries.piggy_bank_summary)

    def deposit_to_piggy_bank(
        self,
        piggy_bank_id,
        amount,
        note: Optional[str] = None,
        month_id=None,
    ) -> PiggyBankEntry:
        cid = create_correlation_id()
        with self._audited("deposit_to_piggy_bank", cid):
            with self._store.transaction() as repo:
                entry = self._entries.deposit_to_piggy_bank(
                    repo, piggy_bank_id, amount, self._now(), note=note, month_id=month_id
                )

        self._audit.log(AuditEventBuilder.piggy_bank_deposit(
            entry.piggy_bank_id, entry.amount, cid
        ))
        return entry

    def list_piggy_bank_entries(self, piggy_bank_id) -> list[PiggyBankEntry]:
        return self._read(
            "list_piggy_bank_entries",
            lambda repo: self._entries.list_piggy_bank_entries(repo, piggy_bank_id),
        )

    # ------------------------------------------------------------------
    # Safety fund
    # ------------------------------------------------------------------

    def safety_balance(self) -> int:
        """Safety fund balance in cents, across every month."""
        return self._read("safety_balance", self._reconciler.safety_balance)

    def safety_emergency_withdrawal(self, month_id, amount, note: Optional[str]) -> SafetyWithdrawalResult:
        cid = create_correlation_id()
        with self._audited("safety_emergency_withdrawal", cid):
            with self._store.transaction() as repo:
                result = self._reconciler.record_emergency_withdrawal(
                    repo, month_id, amount, note, self._now()
                )

        tx = result.transaction
        self._audit.log(AuditEventBuilder.transaction_changed(
            AuditEventType.EMERGENCY_WITHDRAWAL, tx.id, tx.type.value, tx.amount, cid
        ))
        return result

    def safety_history(self, limit=None) -> list[Transaction]:
        """Latest consolidations and emergency withdrawals, newest first."""
        if limit is None:
            bounded = self._app_settings.safety_history_default_limit
        else:
            try:
                bounded = int(limit)
            except (TypeError, ValueError):
                raise ValidationError("limit must be an integer", "limit") from None
            bounded = min(max(1, bounded), self._app_settings.safety_history_max_limit)

        return self._read(
            "safety_history",
            lambda repo: self._reconciler.safety_history(repo, bounded),
        )


def create_app_components(settings: Optional[Settings] = None) -> BudgetLedger:
    """
    Factory function to create all application components.

    Configures logging, opens and initializes the SQLite store (schema and
    seed data), and returns a ready BudgetLedger.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level, debug=app_settings.debug_mode)

    store = SQLiteLedgerStore(settings.database)
    store.initialize()

    return BudgetLedger(
        store=store,
        audit_logger=AuditLogger(),
        settings=settings,
    )
