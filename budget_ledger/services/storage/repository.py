"""
Ledger Repository

All SQL lives here. A repository wraps one checked-out connection and is
only valid inside the store scope (connection() or transaction()) that
created it. Rows come back as the pydantic models in budget_ledger.models.

Aggregates are computed with SUM queries over the live transaction log;
nothing here caches a balance.
"""

import sqlite3
from datetime import date, datetime
from typing import Iterable, Optional, Sequence
from uuid import UUID

from budget_ledger.models.ledger import (
    Attribution,
    Category,
    Month,
    PaymentMethod,
    PiggyBank,
    PiggyBankEntry,
    PiggyBankType,
    PlannedExpense,
    Transaction,
    TransactionType,
    Week,
    WeekStatus,
)

MONTH_COLUMNS = """
    id, period_key, start_date, end_date, income_amount, weekly_budget_amount,
    saving_goal_amount, status, closed_at, created_at
"""

WEEK_COLUMNS = """
    id, month_id, week_index, start_date, end_date, cash_withdraw_amount,
    cash_returned_to_bank_amount, status, closed_at, created_at
"""

TRANSACTION_SELECT = """
    SELECT
        t.id, t.date_time, t.amount, t.direction, t.type, t.month_id, t.week_id,
        t.category_id, t.attribution, t.payment_method, t.concept, t.note,
        t.created_at, c.name AS category_name
    FROM transactions t
    LEFT JOIN categories c ON c.id = t.category_id
"""


def _id(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="seconds") if value is not None else None


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class LedgerRepository:
    """Parameterized reads and writes over one connection."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    # ------------------------------------------------------------------
    # Schema and seed
    # ------------------------------------------------------------------

    def execute_ddl(self, sql: str) -> None:
        self._conn.execute(sql)

    def set_meta(self, key: str, value: str) -> None:
        self._conn.execute(
            """
            INSERT INTO schema_meta(key, value) VALUES(?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value;
            """,
            (key, value),
        )

    def get_meta(self, key: str) -> Optional[str]:
        row = self._conn.execute(
            "SELECT value FROM schema_meta WHERE key = ?;", (key,)
        ).fetchone()
        return str(row["value"]) if row else None

    def seed_categories(self, rows: Sequence[tuple[str, str]]) -> int:
        """Insert (id, name) pairs whose name is missing. Returns rows added."""
        added = 0
        for category_id, name in rows:
            cur = self._conn.execute(
                "INSERT INTO categories(id, name) VALUES(?, ?) ON CONFLICT(name) DO NOTHING;",
                (category_id, name),
            )
            added += cur.rowcount
        return added

    def seed_piggy_banks(self, rows: Sequence[tuple[str, str, PiggyBankType]]) -> int:
        added = 0
        for bank_id, name, kind in rows:
            cur = self._conn.execute(
                "INSERT INTO piggy_banks(id, name, type) VALUES(?, ?, ?) ON CONFLICT(type) DO NOTHING;",
                (bank_id, name, kind.value),
            )
            added += cur.rowcount
        return added

    def ping(self) -> bool:
        return self._conn.execute("SELECT 1 AS ok;").fetchone()["ok"] == 1

    # ------------------------------------------------------------------
    # Months
    # ------------------------------------------------------------------

    def get_month(self, month_id: UUID) -> Optional[Month]:
        row = self._conn.execute(
            f"SELECT {MONTH_COLUMNS} FROM months WHERE id = ?;", (str(month_id),)
        ).fetchone()
        return Month.model_validate(dict(row)) if row else None

    def get_open_month(self) -> Optional[Month]:
        row = self._conn.execute(
            f"SELECT {MONTH_COLUMNS} FROM months WHERE status = 'OPEN' LIMIT 1;"
        ).fetchone()
        return Month.model_validate(dict(row)) if row else None

    def list_months(self) -> list[Month]:
        rows = self._conn.execute(
            f"SELECT {MONTH_COLUMNS} FROM months ORDER BY start_date DESC;"
        ).fetchall()
        return [Month.model_validate(dict(r)) for r in rows]

    def insert_month(self, month: Month) -> None:
        self._conn.execute(
            """
            INSERT INTO months(
                id, period_key, start_date, end_date, income_amount,
                weekly_budget_amount, saving_goal_amount, status
            )
            VALUES(?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                str(month.id),
                month.period_key,
                month.start_date.isoformat(),
                month.end_date.isoformat(),
                month.income_amount,
                month.weekly_budget_amount,
                month.saving_goal_amount,
                month.status.value,
            ),
        )

    def update_month_amounts(
        self,
        month_id: UUID,
        income_amount: int,
        saving_goal_amount: int,
        weekly_budget_amount: int,
    ) -> None:
        self._conn.execute(
            """
            UPDATE months
            SET income_amount = ?, saving_goal_amount = ?, weekly_budget_amount = ?
            WHERE id = ?;
            """,
            (income_amount, saving_goal_amount, weekly_budget_amount, str(month_id)),
        )

    def close_month(self, month_id: UUID, closed_at: datetime) -> None:
        self._conn.execute(
            "UPDATE months SET status = 'CLOSED', closed_at = ? WHERE id = ?;",
            (_ts(closed_at), str(month_id)),
        )

    def delete_month(self, month_id: UUID) -> bool:
        cur = self._conn.execute("DELETE FROM months WHERE id = ?;", (str(month_id),))
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Weeks
    # ------------------------------------------------------------------

    def insert_weeks(self, weeks: Iterable[Week]) -> None:
        self._conn.executemany(
            """
            INSERT INTO weeks(
                id, month_id, week_index, start_date, end_date,
                cash_withdraw_amount, cash_returned_to_bank_amount, status
            )
            VALUES(?, ?, ?, ?, ?, ?, ?, ?);
            """,
            [
                (
                    str(w.id),
                    str(w.month_id),
                    w.week_index,
                    w.start_date.isoformat(),
                    w.end_date.isoformat(),
                    w.cash_withdraw_amount,
                    w.cash_returned_to_bank_amount,
                    w.status.value,
                )
                for w in weeks
            ],
        )

    def get_week(self, week_id: UUID) -> Optional[Week]:
        row = self._conn.execute(
            f"SELECT {WEEK_COLUMNS} FROM weeks WHERE id = ?;", (str(week_id),)
        ).fetchone()
        return Week.model_validate(dict(row)) if row else None

    def list_weeks(self, month_id: UUID) -> list[Week]:
        rows = self._conn.execute(
            f"SELECT {WEEK_COLUMNS} FROM weeks WHERE month_id = ? ORDER BY week_index ASC;",
            (str(month_id),),
        ).fetchall()
        return [Week.model_validate(dict(r)) for r in rows]

    def find_week_for_date(self, month_id: UUID, day: date) -> Optional[Week]:
        row = self._conn.execute(
            f"""
            SELECT {WEEK_COLUMNS} FROM weeks
            WHERE month_id = ? AND start_date <= ? AND end_date >= ?
            ORDER BY week_index ASC
            LIMIT 1;
            """,
            (str(month_id), day.isoformat(), day.isoformat()),
        ).fetchone()
        return Week.model_validate(dict(row)) if row else None

    def set_open_weeks_cash_withdraw(self, month_id: UUID, amount: int) -> int:
        """Closed weeks keep their historical allotment."""
        cur = self._conn.execute(
            """
            UPDATE weeks SET cash_withdraw_amount = ?
            WHERE month_id = ? AND status = ?;
            """,
            (amount, str(month_id), WeekStatus.OPEN.value),
        )
        return cur.rowcount

    def add_cash_returned(self, week_id: UUID, amount: int) -> None:
        self._conn.execute(
            """
            UPDATE weeks
            SET cash_returned_to_bank_amount = cash_returned_to_bank_amount + ?
            WHERE id = ?;
            """,
            (amount, str(week_id)),
        )

    def close_week(self, week_id: UUID, closed_at: datetime) -> None:
        self._conn.execute(
            "UPDATE weeks SET status = 'CLOSED', closed_at = ? WHERE id = ?;",
            (_ts(closed_at), str(week_id)),
        )

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self, include_inactive: bool = False) -> list[Category]:
        sql = "SELECT id, name, is_active, created_at FROM categories"
        if not include_inactive:
            sql += " WHERE is_active = 1"
        rows = self._conn.execute(sql + " ORDER BY name ASC;").fetchall()
        return [Category.model_validate(dict(r)) for r in rows]

    def get_category(self, category_id: UUID) -> Optional[Category]:
        row = self._conn.execute(
            "SELECT id, name, is_active, created_at FROM categories WHERE id = ?;",
            (str(category_id),),
        ).fetchone()
        return Category.model_validate(dict(row)) if row else None

    def insert_category(self, category: Category) -> None:
        self._conn.execute(
            "INSERT INTO categories(id, name, is_active) VALUES(?, ?, ?);",
            (str(category.id), category.name, int(category.is_active)),
        )

    def rename_category(self, category_id: UUID, name: str) -> None:
        self._conn.execute(
            "UPDATE categories SET name = ? WHERE id = ?;", (name, str(category_id))
        )

    def set_category_active(self, category_id: UUID, is_active: bool) -> None:
        self._conn.execute(
            "UPDATE categories SET is_active = ? WHERE id = ?;",
            (int(is_active), str(category_id)),
        )

    # ------------------------------------------------------------------
    # Planned expenses
    # ------------------------------------------------------------------

    def list_planned_expenses(self, include_inactive: bool = False) -> list[PlannedExpense]:
        sql = """
            SELECT id, name, amount, frequency, next_due_date, attribution,
                   category_id, is_active, created_at
            FROM planned_expenses
        """
        if not include_inactive:
            sql += " WHERE is_active = 1"
        rows = self._conn.execute(sql + " ORDER BY next_due_date ASC, name ASC;").fetchall()
        return [PlannedExpense.model_validate(dict(r)) for r in rows]

    def get_planned_expense(self, planned_id: UUID) -> Optional[PlannedExpense]:
        row = self._conn.execute(
            """
            SELECT id, name, amount, frequency, next_due_date, attribution,
                   category_id, is_active, created_at
            FROM planned_expenses WHERE id = ?;
            """,
            (str(planned_id),),
        ).fetchone()
        return PlannedExpense.model_validate(dict(row)) if row else None

    def insert_planned_expense(self, planned: PlannedExpense) -> None:
        self._conn.execute(
            """
            INSERT INTO planned_expenses(
                id, name, amount, frequency, next_due_date, attribution,
                category_id, is_active
            )
            VALUES(?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                str(planned.id),
                planned.name,
                planned.amount,
                planned.frequency.value,
                planned.next_due_date.isoformat(),
                planned.attribution.value,
                _id(planned.category_id),
                int(planned.is_active),
            ),
        )

    def set_planned_expense_active(self, planned_id: UUID, is_active: bool) -> None:
        self._conn.execute(
            "UPDATE planned_expenses SET is_active = ? WHERE id = ?;",
            (int(is_active), str(planned_id)),
        )

    # ------------------------------------------------------------------
    # Piggy banks
    # ------------------------------------------------------------------

    def list_piggy_banks(self) -> list[PiggyBank]:
        rows = self._conn.execute(
            "SELECT id, name, type, created_at FROM piggy_banks ORDER BY type DESC;"
        ).fetchall()
        return [PiggyBank.model_validate(dict(r)) for r in rows]

    def get_piggy_bank(self, bank_id: UUID) -> Optional[PiggyBank]:
        row = self._conn.execute(
            "SELECT id, name, type, created_at FROM piggy_banks WHERE id = ?;",
            (str(bank_id),),
        ).fetchone()
        return PiggyBank.model_validate(dict(row)) if row else None

    def get_piggy_bank_by_type(self, kind: PiggyBankType) -> Optional[PiggyBank]:
        row = self._conn.execute(
            "SELECT id, name, type, created_at FROM piggy_banks WHERE type = ?;",
            (kind.value,),
        ).fetchone()
        return PiggyBank.model_validate(dict(row)) if row else None

    def insert_piggy_bank_entry(self, entry: PiggyBankEntry) -> None:
        self._conn.execute(
            """
            INSERT INTO piggy_bank_entries(id, piggy_bank_id, date_time, amount, note, month_id)
            VALUES(?, ?, ?, ?, ?, ?);
            """,
            (
                str(entry.id),
                str(entry.piggy_bank_id),
                _ts(entry.date_time),
                entry.amount,
                entry.note,
                _id(entry.month_id),
            ),
        )

    def list_piggy_bank_entries(self, bank_id: UUID) -> list[PiggyBankEntry]:
        rows = self._conn.execute(
            """
            SELECT id, piggy_bank_id, date_time, amount, note, month_id
            FROM piggy_bank_entries
            WHERE piggy_bank_id = ?
            ORDER BY date_time DESC, rowid DESC;
            """,
            (str(bank_id),),
        ).fetchall()
        return [PiggyBankEntry.model_validate(dict(r)) for r in rows]

    def piggy_bank_totals(self) -> dict[UUID, tuple[int, int]]:
        """Returns {piggy_bank_id: (total_cents, entry_count)}."""
        rows = self._conn.execute(
            """
            SELECT piggy_bank_id, COALESCE(SUM(amount), 0) AS total, COUNT(*) AS entries
            FROM piggy_bank_entries
            GROUP BY piggy_bank_id;
            """
        ).fetchall()
        return {
            UUID(r["piggy_bank_id"]): (int(r["total"]), int(r["entries"]))
            for r in rows
        }

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _transaction_params(self, tx: Transaction) -> tuple:
        return (
            str(tx.id),
            _ts(tx.date_time),
            tx.amount,
            tx.direction.value,
            tx.type.value,
            str(tx.month_id),
            _id(tx.week_id),
            _id(tx.category_id),
            tx.attribution.value,
            tx.payment_method.value,
            tx.concept,
            tx.note,
        )

    def insert_transaction(self, tx: Transaction) -> None:
        self._conn.execute(
            """
            INSERT INTO transactions(
                id, date_time, amount, direction, type, month_id, week_id,
                category_id, attribution, payment_method, concept, note
            )
            VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            self._transaction_params(tx),
        )

    def insert_transaction_if_absent(self, tx: Transaction) -> bool:
        """
        Insert unless a uniqueness rule already covers it.

        Used for the per-week CASH_WITHDRAWAL, guarded by a partial unique index.
        Returns True when a row was written.
        """
        cur = self._conn.execute(
            """
            INSERT INTO transactions(
                id, date_time, amount, direction, type, month_id, week_id,
                category_id, attribution, payment_method, concept, note
            )
            VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT DO NOTHING;
            """,
            self._transaction_params(tx),
        )
        return cur.rowcount == 1

    def get_transaction(self, tx_id: UUID) -> Optional[Transaction]:
        row = self._conn.execute(
            TRANSACTION_SELECT + " WHERE t.id = ?;", (str(tx_id),)
        ).fetchone()
        return Transaction.model_validate(dict(row)) if row else None

    def list_transactions(self, month_id: UUID) -> list[Transaction]:
        rows = self._conn.execute(
            TRANSACTION_SELECT
            + " WHERE t.month_id = ? ORDER BY t.date_time DESC, t.rowid DESC;",
            (str(month_id),),
        ).fetchall()
        return [Transaction.model_validate(dict(r)) for r in rows]

    def list_transactions_by_type(
        self,
        types: Sequence[TransactionType],
        limit: int,
    ) -> list[Transaction]:
        rows = self._conn.execute(
            TRANSACTION_SELECT
            + f"""
            WHERE t.type IN ({_placeholders(len(types))})
            ORDER BY t.date_time DESC, t.rowid DESC
            LIMIT ?;
            """,
            (*[t.value for t in types], int(limit)),
        ).fetchall()
        return [Transaction.model_validate(dict(r)) for r in rows]

    def update_transaction(self, tx: Transaction) -> None:
        self._conn.execute(
            """
            UPDATE transactions
            SET date_time = ?, amount = ?, week_id = ?, category_id = ?,
                attribution = ?, payment_method = ?, concept = ?, note = ?
            WHERE id = ?;
            """,
            (
                _ts(tx.date_time),
                tx.amount,
                _id(tx.week_id),
                _id(tx.category_id),
                tx.attribution.value,
                tx.payment_method.value,
                tx.concept,
                tx.note,
                str(tx.id),
            ),
        )

    def delete_transaction(self, tx_id: UUID) -> bool:
        cur = self._conn.execute("DELETE FROM transactions WHERE id = ?;", (str(tx_id),))
        return cur.rowcount > 0

    def has_transaction(self, week_id: UUID, tx_type: TransactionType) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM transactions WHERE week_id = ? AND type = ? LIMIT 1;",
            (str(week_id), tx_type.value),
        ).fetchone()
        return row is not None

    def count_transactions(self, month_id: Optional[UUID] = None) -> int:
        if month_id is None:
            row = self._conn.execute("SELECT COUNT(*) AS n FROM transactions;").fetchone()
        else:
            row = self._conn.execute(
                "SELECT COUNT(*) AS n FROM transactions WHERE month_id = ?;",
                (str(month_id),),
            ).fetchone()
        return int(row["n"])

    def sum_amounts(
        self,
        types: Sequence[TransactionType],
        month_id: Optional[UUID] = None,
        payment_methods: Optional[Sequence[PaymentMethod]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        """
        Sum of amounts for the given types.

        month_id=None sums across every month (the safety fund is global).
        date_from / date_to compare the calendar date of date_time, inclusive.
        """
        sql = f"""
            SELECT COALESCE(SUM(amount), 0) AS total
            FROM transactions
            WHERE type IN ({_placeholders(len(types))})
        """
        params: list[object] = [t.value for t in types]

        if month_id is not None:
            sql += " AND month_id = ?"
            params.append(str(month_id))
        if payment_methods:
            sql += f" AND payment_method IN ({_placeholders(len(payment_methods))})"
            params.extend(m.value for m in payment_methods)
        if date_from is not None:
            sql += " AND substr(date_time, 1, 10) >= ?"
            params.append(date_from.isoformat())
        if date_to is not None:
            sql += " AND substr(date_time, 1, 10) <= ?"
            params.append(date_to.isoformat())

        row = self._conn.execute(sql + ";", params).fetchone()
        return int(row["total"]) if row else 0

    def sum_by_attribution(
        self,
        month_id: UUID,
        tx_type: TransactionType = TransactionType.EXPENSE,
    ) -> dict[Attribution, int]:
        """Zero-filled over every Attribution member."""
        rows = self._conn.execute(
            """
            SELECT attribution, COALESCE(SUM(amount), 0) AS total
            FROM transactions
            WHERE month_id = ? AND type = ?
            GROUP BY attribution;
            """,
            (str(month_id), tx_type.value),
        ).fetchall()

        split = {attribution: 0 for attribution in Attribution}
        for r in rows:
            split[Attribution(r["attribution"])] = int(r["total"])
        return split
