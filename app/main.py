"""
Streamlit Frontend for Expense Tracker

Screens:
1. Sign in / create account
2. Dashboard (expenses by category for today, this month, this year, all time)
3. Add expense / add income
4. All expenses grouped by category
5. Savings, in the currency of the user's choice

Every screen is a thin view over a controller from expense_tracker.controllers;
the controllers own the state and the rules.
"""

import asyncio
from datetime import datetime, time

import streamlit as st

from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.controllers import (
    AddExpenseController,
    AddIncomeController,
    AllExpensesController,
    DashboardController,
    LogInController,
    SavingsController,
    SignUpController,
    expense_detail_rows,
)
from expense_tracker.gateway import DataGateway
from expense_tracker.models import EXPENSE_CATEGORIES, Period
from expense_tracker.orchestrator import create_app_components


st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def show_alert(alert) -> None:
    st.error(f"**{alert.title}:** {alert.message}")


async def _attach(controller) -> None:
    await controller.attach()
    controller.detach()


async def _submit_and_flush(gateway: DataGateway, submit, *args, **kwargs):
    """Run a form submit and wait for its background writes to land."""
    alert = submit(*args, **kwargs)
    await gateway.flush()
    return alert


def main():
    """Main application entry point."""
    gateway, rates = get_components()

    if not gateway.is_signed_in:
        render_auth_page(gateway)
        return

    st.sidebar.title("💸 Expense Tracker")
    st.sidebar.caption(gateway.current_user.email)
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Expense", "📋 All Expenses", "💰 Savings", "⚙️ Settings"],
        index=0,
    )

    if st.sidebar.button("Sign out"):
        run_async(gateway.sign_out())
        st.rerun()

    if page == "📊 Dashboard":
        render_dashboard_page(gateway)
    elif page == "➕ Add Expense":
        render_add_expense_page(gateway)
    elif page == "📋 All Expenses":
        render_all_expenses_page(gateway)
    elif page == "💰 Savings":
        render_savings_page(gateway, rates)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_auth_page(gateway: DataGateway):
    """Render sign-in and sign-up forms."""
    st.title("💸 Expense Tracker")
    sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Create account"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            controller = LogInController(gateway)
            if run_async(controller.submit(email, password, watch=False)):
                st.rerun()
            elif controller.last_alert:
                show_alert(controller.last_alert)

    with sign_up_tab:
        with st.form("sign_up"):
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            confirm = st.text_input("Confirm password", type="password")
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            controller = SignUpController(gateway)
            if run_async(controller.submit(email, password, confirm, watch=False)):
                st.rerun()
            elif controller.last_alert:
                show_alert(controller.last_alert)


def render_dashboard_page(gateway: DataGateway):
    """Render expenses per category for the selected timeline."""
    st.title("📊 Dashboard")

    timeline = st.radio(
        "Timeline",
        options=[Period.DAY, Period.MONTH, Period.YEAR, Period.ALL],
        format_func=lambda p: {"day": "Daily", "month": "Monthly", "year": "Yearly", "all": "Total"}[p.value],
        horizontal=True,
    )

    controller = DashboardController(gateway, timeline=timeline)
    run_async(_attach(controller))

    totals = controller.chart_data
    if not totals:
        st.info("No expenses for this period yet. Use 'Add Expense' to record one.")
        return

    st.metric("Spent", f"${controller.total_spent:.2f}")
    st.bar_chart({total.category or "(none)": float(total.amount) for total in totals})
    st.table(
        [{"Category": category, "Total": amount} for category, amount in controller.table_rows]
    )


def render_add_expense_page(gateway: DataGateway):
    """Render the add-expense and add-income forms."""
    st.title("➕ Add Expense")

    with st.form("add_expense"):
        name = st.text_input("Expense name*")
        amount = st.text_input("Amount*")
        category = st.selectbox("Category*", EXPENSE_CATEGORIES)
        col1, col2 = st.columns(2)
        with col1:
            day = st.date_input("Date", value=datetime.now().date())
        with col2:
            at = st.time_input("Time", value=time(12, 0))
        submitted = st.form_submit_button("Add expense", type="primary")

    if submitted:
        controller = AddExpenseController(gateway)
        alert = run_async(
            _submit_and_flush(
                gateway,
                controller.submit,
                name or None,
                amount,
                datetime.combine(day, at),
                category=category,
            )
        )
        if alert:
            show_alert(alert)
        else:
            st.success(f"Added {controller.last_expense.name}")

    st.markdown("---")
    st.markdown("### Add Income")

    with st.form("add_income"):
        income_amount = st.text_input("Income amount*")
        income_day = st.date_input("Date", value=datetime.now().date(), key="income_day")
        income_submitted = st.form_submit_button("Add income")

    if income_submitted:
        controller = AddIncomeController(gateway)
        alert = run_async(
            _submit_and_flush(
                gateway,
                controller.submit,
                income_amount,
                datetime.combine(income_day, time(12, 0)),
            )
        )
        if alert:
            show_alert(alert)
        else:
            st.success("Income added")


def render_all_expenses_page(gateway: DataGateway):
    """Render every expense grouped by category."""
    st.title("📋 All Expenses")

    controller = AllExpensesController(gateway)
    run_async(_attach(controller))

    if not controller.categories:
        st.info("No expenses recorded yet.")
        return

    for category in controller.categories:
        with st.expander(category or "(no category)"):
            for expense in controller.expenses_for(category):
                st.markdown("\n\n".join(expense_detail_rows(expense)))
                st.markdown("---")


def render_savings_page(gateway: DataGateway, rates):
    """Render the savings bars in the selected currency."""
    currencies = get_settings().app.supported_currencies_list
    controller = SavingsController(gateway, rates, currencies=currencies)

    selected = st.selectbox("Currency", controller.currencies)
    run_async(_attach(controller))
    if selected != controller.selected_currency:
        run_async(controller.select_currency(selected))

    st.title("💰 Savings")
    st.caption(controller.label)

    if not controller.chart_data:
        st.warning(f"No exchange rate available for {controller.selected_currency} yet.")
        return

    labels = {"day": "Today", "month": "This month", "year": "This year", "all": "Total"}
    st.bar_chart({labels[s.period.value]: float(s.amount) for s in controller.chart_data})


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("ExchangeRate-API (Currency)", "exchange_rate"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
