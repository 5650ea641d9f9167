"""
Ledger Entries

Direct ledger writes made by the user (transactions), and the reference
data they point at (categories, piggy banks, planned expenses).

Editing or deleting a transaction never recomputes anything: every
balance is aggregated from the live log on the next read.
"""

from datetime import datetime
from typing import Optional

from budget_ledger.models.ledger import (
    CANONICAL_DIRECTION,
    Attribution,
    Category,
    PaymentMethod,
    PiggyBank,
    PiggyBankEntry,
    PlannedExpense,
    PlannedExpenseFrequency,
    Transaction,
    TransactionType,
)
from budget_ledger.models.views import PiggyBankBalance, PiggyBankSummary
from budget_ledger.services.reconciliation import require_month
from budget_ledger.services.storage import (
    ConflictError,
    LedgerRepository,
    NotFoundError,
)
from budget_ledger.validation import (
    ValidationError,
    clean_text,
    parse_date,
    parse_datetime,
    parse_enum,
    parse_positive_amount,
    parse_uuid,
    require_text,
)

# Only these types are re-attached to another week when their time is edited
_USER_TYPES = (TransactionType.EXPENSE, TransactionType.EXTRA_INCOME)


def require_category(repo: LedgerRepository, category_id) -> Category:
    category = repo.get_category(parse_uuid(category_id, "category_id"))
    if category is None:
        raise NotFoundError("no such category")
    return category


def require_transaction(repo: LedgerRepository, transaction_id) -> Transaction:
    tx = repo.get_transaction(parse_uuid(transaction_id, "transaction_id"))
    if tx is None:
        raise NotFoundError("no such transaction")
    return tx


def require_piggy_bank(repo: LedgerRepository, piggy_bank_id) -> PiggyBank:
    bank = repo.get_piggy_bank(parse_uuid(piggy_bank_id, "piggy_bank_id"))
    if bank is None:
        raise NotFoundError("no such piggy bank")
    return bank


class EntryService:
    """Transactions, categories, piggy banks and planned expenses."""

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def create_transaction(
        self,
        repo: LedgerRepository,
        amount,
        now: datetime,
        type=TransactionType.EXPENSE,
        month_id=None,
        week_id=None,
        category_id=None,
        attribution=None,
        payment_method=None,
        concept: Optional[str] = None,
        note: Optional[str] = None,
        date_time=None,
    ) -> Transaction:
        """
        Append a ledger entry.

        The month defaults to the OPEN month, the time to now, and the week
        to the month's week containing that time. Direction always follows
        the type.
        """
        tx_type = parse_enum(TransactionType, type, "type", default=TransactionType.EXPENSE)
        cents = parse_positive_amount(amount)
        owner = parse_enum(Attribution, attribution, "attribution", default=Attribution.HOUSE)
        method = parse_enum(PaymentMethod, payment_method, "payment_method", default=PaymentMethod.CARD)
        when = parse_datetime(date_time, "date_time") if date_time is not None else now
        label = clean_text(concept, 200, "concept")
        text = clean_text(note, 1000, "note")
        if tx_type == TransactionType.EXPENSE and category_id is None:
            raise ValidationError("category_id is required for expenses", "category_id")

        if month_id is None:
            month = repo.get_open_month()
            if month is None:
                raise ConflictError("no open month to record the transaction in")
        else:
            month = require_month(repo, month_id)

        category = require_category(repo, category_id) if category_id is not None else None

        if week_id is not None:
            week = repo.get_week(parse_uuid(week_id, "week_id"))
            if week is None:
                raise NotFoundError("no such week")
            if week.month_id != month.id:
                raise ValidationError("week does not belong to the month", "week_id")
        else:
            week = repo.find_week_for_date(month.id, when.date())

        tx = Transaction(
            date_time=when,
            amount=cents,
            direction=CANONICAL_DIRECTION[tx_type],
            type=tx_type,
            month_id=month.id,
            week_id=week.id if week else None,
            category_id=category.id if category else None,
            attribution=owner,
            payment_method=method,
            concept=label,
            note=text,
        )
        repo.insert_transaction(tx)
        return repo.get_transaction(tx.id)

    def update_transaction(
        self,
        repo: LedgerRepository,
        transaction_id,
        amount=None,
        category_id=None,
        attribution=None,
        payment_method=None,
        concept: Optional[str] = None,
        note: Optional[str] = None,
        date_time=None,
    ) -> Transaction:
        """
        Edit the given fields; None leaves a field untouched.

        An empty concept or note clears it.
        """
        fields = (amount, category_id, attribution, payment_method, concept, note, date_time)
        if all(f is None for f in fields):
            raise ValidationError("nothing to update")

        tx = require_transaction(repo, transaction_id)
        changes: dict = {}

        if amount is not None:
            changes["amount"] = parse_positive_amount(amount)
        if attribution is not None:
            changes["attribution"] = parse_enum(Attribution, attribution, "attribution")
        if payment_method is not None:
            changes["payment_method"] = parse_enum(PaymentMethod, payment_method, "payment_method")
        if concept is not None:
            changes["concept"] = clean_text(concept, 200, "concept")
        if note is not None:
            changes["note"] = clean_text(note, 1000, "note")
        if category_id is not None:
            changes["category_id"] = require_category(repo, category_id).id
        if date_time is not None:
            when = parse_datetime(date_time, "date_time")
            changes["date_time"] = when
            if tx.type in _USER_TYPES:
                week = repo.find_week_for_date(tx.month_id, when.date())
                changes["week_id"] = week.id if week else None

        updated = tx.model_copy(update=changes)
        repo.update_transaction(updated)
        return repo.get_transaction(tx.id)

    def delete_transaction(self, repo: LedgerRepository, transaction_id) -> Transaction:
        tx = require_transaction(repo, transaction_id)
        repo.delete_transaction(tx.id)
        return tx

    def list_transactions(self, repo: LedgerRepository, month_id) -> list[Transaction]:
        month = require_month(repo, month_id)
        return repo.list_transactions(month.id)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def create_category(self, repo: LedgerRepository, name: str) -> Category:
        category = Category(name=require_text(name, 100, "name"))
        repo.insert_category(category)
        return repo.get_category(category.id)

    def rename_category(self, repo: LedgerRepository, category_id, name: str) -> Category:
        new_name = require_text(name, 100, "name")
        category = require_category(repo, category_id)
        repo.rename_category(category.id, new_name)
        return repo.get_category(category.id)

    def deactivate_category(self, repo: LedgerRepository, category_id) -> Category:
        """Soft delete: past transactions keep pointing at it."""
        category = require_category(repo, category_id)
        repo.set_category_active(category.id, False)
        return repo.get_category(category.id)

    # ------------------------------------------------------------------
    # Piggy banks
    # ------------------------------------------------------------------

    def piggy_bank_summary(self, repo: LedgerRepository) -> PiggyBankSummary:
        totals = repo.piggy_bank_totals()
        balances = []
        for bank in repo.list_piggy_banks():
            total, count = totals.get(bank.id, (0, 0))
            balances.append(PiggyBankBalance(piggy_bank=bank, total_cents=total, entry_count=count))
        return PiggyBankSummary(
            piggy_banks=balances,
            total_cents=sum(b.total_cents for b in balances),
        )

    def deposit_to_piggy_bank(
        self,
        repo: LedgerRepository,
        piggy_bank_id,
        amount,
        now: datetime,
        note: Optional[str] = None,
        month_id=None,
    ) -> PiggyBankEntry:
        """
        Record money put straight into a jar.

        This writes no ledger transaction; pocket cash reaches the jars
        through week close.
        """
        cents = parse_positive_amount(amount)
        text = clean_text(note, 1000, "note")
        bank = require_piggy_bank(repo, piggy_bank_id)
        month = require_month(repo, month_id) if month_id is not None else None

        entry = PiggyBankEntry(
            piggy_bank_id=bank.id,
            date_time=now,
            amount=cents,
            note=text,
            month_id=month.id if month else None,
        )
        repo.insert_piggy_bank_entry(entry)
        return entry

    def list_piggy_bank_entries(self, repo: LedgerRepository, piggy_bank_id) -> list[PiggyBankEntry]:
        bank = require_piggy_bank(repo, piggy_bank_id)
        return repo.list_piggy_bank_entries(bank.id)

    # ------------------------------------------------------------------
    # Planned expenses
    # ------------------------------------------------------------------

    def create_planned_expense(
        self,
        repo: LedgerRepository,
        name: str,
        amount,
        frequency,
        next_due_date,
        attribution=None,
        category_id=None,
    ) -> PlannedExpense:
        planned = PlannedExpense(
            name=require_text(name, 200, "name"),
            amount=parse_positive_amount(amount),
            frequency=parse_enum(PlannedExpenseFrequency, frequency, "frequency"),
            next_due_date=parse_date(next_due_date, "next_due_date"),
            attribution=parse_enum(Attribution, attribution, "attribution", default=Attribution.HOUSE),
            category_id=require_category(repo, category_id).id if category_id is not None else None,
        )
        repo.insert_planned_expense(planned)
        return repo.get_planned_expense(planned.id)

    def deactivate_planned_expense(self, repo: LedgerRepository, planned_id) -> PlannedExpense:
        planned = repo.get_planned_expense(parse_uuid(planned_id, "planned_expense_id"))
        if planned is None:
            raise NotFoundError("no such planned expense")
        repo.set_planned_expense_active(planned.id, False)
        return repo.get_planned_expense(planned.id)
