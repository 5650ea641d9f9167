"""
Streamlit Frontend for Budget Ledger

The household dashboard: how much is left this month, how much pocket
cash is left this week, and the buttons that move money around.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every figure comes from the ledger (nothing is computed in the UI)
3. Clear error messages when an operation is rejected
4. Explicit action for every write (no auto-closing of weeks or months)
"""

from datetime import date, datetime

import streamlit as st

from budget_ledger.models.ledger import (
    Attribution,
    PaymentMethod,
    PlannedExpenseFrequency,
)
from budget_ledger.orchestrator import BudgetLedger, create_app_components
from budget_ledger.services import ConflictError, NotFoundError
from budget_ledger.validation import ValidationError, format_to_major_units

_USER_ERRORS = (ValidationError, ConflictError, NotFoundError)


# Page configuration
st.set_page_config(
    page_title="Budget Ledger",
    page_icon="💶",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


def euros(cents) -> str:
    value = format_to_major_units(cents)
    return "-" if value is None else f"{value:,.2f} €"


@st.cache_resource
def get_ledger() -> BudgetLedger:
    """Get or create the ledger facade (cached)."""
    return create_app_components()


def main():
    """Main application entry point."""
    ledger = get_ledger()

    # Sidebar navigation
    st.sidebar.title("💶 Budget Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Entry", "📅 Month", "🐷 Savings", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How it works:**
        1. Start the month with your income
        2. Each week's cash is withdrawn automatically
        3. Record what you spend
        4. Close the week: leftovers go to the jars or back to the bank
        5. Close the month: the leftover goes to the safety fund
        """
    )

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(ledger)
    elif page == "➕ Add Entry":
        render_entry_page(ledger)
    elif page == "📅 Month":
        render_month_page(ledger)
    elif page == "🐷 Savings":
        render_savings_page(ledger)
    elif page == "⚙️ Settings":
        render_settings_page(ledger)


def render_dashboard_page(ledger: BudgetLedger):
    """Render the current month summary."""
    st.title("📊 This Month")

    summary = ledger.get_current_summary()
    if summary is None:
        st.info("No month is open. Start one from the 'Month' page.")
        return

    st.markdown(f"**{summary.month.period_key}** · {summary.days_left} days left")

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Remaining this month", euros(summary.remaining_month_cents))
        st.metric("Daily pace", euros(round(summary.daily_pace_cents)))
    with col2:
        st.metric("Bank", euros(summary.bank_balance_cents))
        st.metric("Pocket cash", euros(summary.pocket_cash_cents))
    with col3:
        st.metric("Safety fund", euros(summary.safety_balance_cents))
        st.metric("Spent", euros(summary.total_expenses_cents))

    if summary.week is not None:
        st.markdown("---")
        week = summary.week
        st.markdown(
            f"### Week {week.week_index} "
            f"({week.start_date:%d/%m} - {week.end_date:%d/%m}) · {week.status.value}"
        )
        col1, col2 = st.columns(2)
        col1.metric("Cash spent this week", euros(summary.week_spent_cash_cents))
        col2.metric("Cash left this week", euros(summary.week_remaining_cash_cents))

    st.markdown("---")
    st.markdown("### Who spent what")
    cols = st.columns(len(summary.attribution_split_cents))
    for col, (attribution, cents) in zip(cols, summary.attribution_split_cents.items()):
        col.metric(attribution.value.title(), euros(cents))

    st.markdown("---")
    st.markdown("### Transactions")
    transactions = ledger.list_transactions(summary.month.id)
    if not transactions:
        st.info("Nothing recorded yet this month.")
        return

    for tx in transactions:
        with st.expander(
            f"{tx.date_time:%d/%m %H:%M} · {tx.type.value} · "
            f"{tx.concept or tx.category_name or ''} · {euros(tx.amount)}"
        ):
            st.markdown(
                f"**Method:** {tx.payment_method.value} · "
                f"**Attribution:** {tx.attribution.value} · "
                f"**Category:** {tx.category_name or '-'}"
            )
            if tx.note:
                st.markdown(f"**Note:** {tx.note}")
            if st.button("🗑️ Delete", key=f"delete-{tx.id}"):
                try:
                    ledger.delete_transaction(tx.id)
                    st.rerun()
                except _USER_ERRORS as e:
                    st.error(str(e))


def render_entry_page(ledger: BudgetLedger):
    """Render the expense / extra income forms."""
    st.title("➕ Add Entry")

    month = ledger.get_current_month()
    if month is None:
        st.warning("Start a month first.")
        return

    categories = ledger.list_categories()

    st.markdown("### Expense")
    with st.form("expense_form", clear_on_submit=True):
        amount = st.text_input("Amount (€)", placeholder="12,50")
        category = st.selectbox(
            "Category",
            options=categories,
            format_func=lambda c: c.name,
        )
        col1, col2 = st.columns(2)
        with col1:
            method = st.selectbox("Paid with", options=list(PaymentMethod), format_func=lambda m: m.value.title())
        with col2:
            attribution = st.selectbox("For", options=list(Attribution), index=2, format_func=lambda a: a.value.title())
        concept = st.text_input("Concept (optional)")
        note = st.text_area("Note (optional)")
        spent_on = st.date_input("Date", value=date.today())

        if st.form_submit_button("💾 Save expense", type="primary"):
            try:
                ledger.create_transaction(
                    amount=amount,
                    type="EXPENSE",
                    category_id=category.id if category else None,
                    attribution=attribution,
                    payment_method=method,
                    concept=concept,
                    note=note,
                    date_time=datetime.combine(spent_on, datetime.now().time()),
                )
                st.success("✅ Expense saved")
            except _USER_ERRORS as e:
                st.error(f"❌ {e}")

    st.markdown("---")
    st.markdown("### Extra income")
    with st.form("income_form", clear_on_submit=True):
        amount = st.text_input("Amount (€)", key="income_amount")
        attribution = st.selectbox("For", options=list(Attribution), index=2, format_func=lambda a: a.value.title(), key="income_attr")
        concept = st.text_input("Concept (optional)", key="income_concept")

        if st.form_submit_button("💾 Save income"):
            try:
                ledger.record_extra_income(month.id, amount, attribution=attribution, concept=concept)
                st.success("✅ Income saved")
            except _USER_ERRORS as e:
                st.error(f"❌ {e}")


def render_month_page(ledger: BudgetLedger):
    """Render month start/close and week close."""
    st.title("📅 Month")

    month = ledger.get_current_month()

    if month is None:
        st.markdown("### Start a new month")
        with st.form("start_month_form"):
            income = st.text_input("Income (€)")
            saving_goal = st.text_input("Saving goal (€)", value="0")
            weekly_budget = st.text_input("Weekly cash budget (€)", value="0")
            start = st.date_input("Start date", value=date.today())

            if st.form_submit_button("▶️ Start month", type="primary"):
                try:
                    new_month, weeks = ledger.start_month(income, saving_goal, weekly_budget, start_date=start)
                    st.success(f"✅ {new_month.period_key} started with {len(weeks)} weeks")
                except _USER_ERRORS as e:
                    st.error(f"❌ {e}")
        return

    st.markdown(
        f"**{month.period_key}**: {month.start_date:%d/%m} - {month.end_date:%d/%m} · "
        f"income {euros(month.income_amount)} · weekly cash {euros(month.weekly_budget_amount)}"
    )

    week = ledger.get_current_week()
    if week is not None and week.is_open:
        st.markdown("---")
        st.markdown(f"### Close week {week.week_index}")
        with st.form("close_week_form"):
            col1, col2, col3 = st.columns(3)
            piggy_two = col1.text_input("2€ coin jar", value="0")
            piggy_normal = col2.text_input("General jar", value="0")
            to_bank = col3.text_input("Back to bank", value="0")
            note = st.text_input("Note (optional)")

            if st.form_submit_button("✅ Close week"):
                try:
                    result = ledger.close_week(week.id, piggy_two, piggy_normal, to_bank, note=note)
                    st.success(
                        f"Week closed. Moved {euros(result.total_moved_cents)}, "
                        f"pocket cash left {euros(result.pocket_cash_after_cents)}"
                    )
                except _USER_ERRORS as e:
                    st.error(f"❌ {e}")

    st.markdown("---")
    st.markdown("### Close month")
    st.warning("Closing is final. Any leftover goes to the safety fund.")
    if st.button("🔒 Close month"):
        try:
            result = ledger.close_month(month.id)
            st.success(f"Month closed. {euros(result.consolidated_cents)} moved to the safety fund.")
        except _USER_ERRORS as e:
            st.error(f"❌ {e}")


def render_savings_page(ledger: BudgetLedger):
    """Render piggy banks, safety fund and planned expenses."""
    st.title("🐷 Savings")

    summary = ledger.piggy_bank_summary()
    st.markdown(f"### Piggy banks · {euros(summary.total_cents)}")
    cols = st.columns(max(1, len(summary.piggy_banks)))
    for col, balance in zip(cols, summary.piggy_banks):
        col.metric(balance.piggy_bank.name, euros(balance.total_cents), f"{balance.entry_count} deposits")

    st.markdown("---")
    st.markdown(f"### Safety fund · {euros(ledger.safety_balance())}")
    for tx in ledger.safety_history():
        sign = "+" if tx.direction.value == "IN" else "-"
        st.markdown(f"- {tx.date_time:%d/%m/%Y} · {sign}{euros(tx.amount)} · {tx.concept or tx.note or ''}")

    month = ledger.get_current_month()
    if month is not None:
        with st.form("emergency_form", clear_on_submit=True):
            amount = st.text_input("Emergency amount (€)")
            reason = st.text_input("Reason")
            if st.form_submit_button("🚨 Withdraw from safety fund"):
                try:
                    ledger.safety_emergency_withdrawal(month.id, amount, reason)
                    st.success("✅ Withdrawal recorded")
                except _USER_ERRORS as e:
                    st.error(f"❌ {e}")

    st.markdown("---")
    st.markdown("### Planned expenses")
    for planned in ledger.list_planned_expenses():
        st.markdown(
            f"- **{planned.name}** · {euros(planned.amount)} · "
            f"{planned.frequency.value.lower()} · next {planned.next_due_date:%d/%m/%Y}"
        )
    with st.form("planned_form", clear_on_submit=True):
        name = st.text_input("Name")
        amount = st.text_input("Amount (€)", key="planned_amount")
        frequency = st.selectbox("Frequency", options=list(PlannedExpenseFrequency), format_func=lambda f: f.value.title())
        due = st.date_input("Next due date", value=date.today())
        if st.form_submit_button("➕ Add planned expense"):
            try:
                ledger.create_planned_expense(name, amount, frequency, due)
                st.success("✅ Planned expense added")
            except _USER_ERRORS as e:
                st.error(f"❌ {e}")


def render_settings_page(ledger: BudgetLedger):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from budget_ledger.config import validate_all_settings

    status = validate_all_settings()
    for name, key in [("Database", "database"), ("Application", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} settings - OK")
        else:
            st.error(f"❌ {name} settings - {status.get(f'{key}_error', 'Invalid')}")

    if ledger.health().get("ok"):
        st.success("✅ Ledger database - Reachable")

    st.markdown("---")
    st.markdown("### Categories")
    for category in ledger.list_categories():
        st.markdown(f"- {category.name}")
    with st.form("category_form", clear_on_submit=True):
        name = st.text_input("New category")
        if st.form_submit_button("➕ Add category"):
            try:
                ledger.create_category(name)
                st.success("✅ Category added")
            except _USER_ERRORS as e:
                st.error(f"❌ {e}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "Settings are read from environment variables or a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
