import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import base64
from datetime import date

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from family_budget import config
from family_budget.categories import (
    can_delete_category,
    get_category,
    main_categories,
    subcategories,
)
from family_budget.domain import ARS, CURRENCIES, EXPENSE, INCOME
from family_budget.formatting import format_currency, format_date, format_month
from family_budget.state import BudgetController
from family_budget.storage import make_store

config.configure_logging()

st.set_page_config(page_title="Family Budget", layout="wide")


def run(coro):
    return asyncio.run(coro)


if "controller" not in st.session_state:
    st.session_state.controller = run(BudgetController.load(make_store()))

controller: BudgetController = st.session_state.controller
state = controller.state
registry = state.registry

TYPE_LABELS = {EXPENSE: "💸 Expense", INCOME: "💰 Income"}


def cat_label(cat) -> str:
    icon = "🖼" if cat.is_image else cat.icon
    return f"{icon} {cat.name}"


st.title("💰 Family Budget")
st.caption("👪 Data shared with the family")

totals = state.totals()
k1, k2, k3 = st.columns(3)
with k1:
    st.metric("Income", format_currency(totals.total_income))
with k2:
    st.metric("Expenses", format_currency(totals.total_expense))
with k3:
    st.metric("Balance", format_currency(totals.balance))

for alert in controller.alerts[-3:]:
    st.warning(f"⚠️ {alert['alert']}")

menu = st.sidebar.radio(
    "Menu",
    ["➕ Add", "🧾 History", "📊 Statistics", "⚙️ Settings"]
)

if menu == "➕ Add":
    st.subheader("➕ New Transaction")
    tx_type = st.radio("Type", [EXPENSE, INCOME], format_func=TYPE_LABELS.get, horizontal=True)

    mains = main_categories(registry, tx_type)
    main_options = [c.id for c in mains] + ["custom"]
    main_id = st.selectbox(
        "Category",
        main_options,
        format_func=lambda cid: "✏️ New category..." if cid == "custom" else cat_label(get_category(registry, cid)),
    )

    new_name = ""
    category_id = main_id
    if main_id == "custom":
        new_name = st.text_input("New category name")
    else:
        subs = subcategories(registry, main_id)
        if subs:
            category_id = st.selectbox(
                "Subcategory",
                [main_id] + [c.id for c in subs],
                format_func=lambda cid: "(none)" if cid == main_id else cat_label(get_category(registry, cid)),
            )

    with st.form("transaction_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.text_input("Amount")
            currency = st.selectbox("Currency", CURRENCIES, index=CURRENCIES.index(ARS))
        with col2:
            on = st.date_input("Date", value=date.today())
            note = st.text_input("Note (optional)")
        submitted = st.form_submit_button("Add Transaction")

    if submitted:
        if main_id == "custom" and not new_name.strip():
            st.error("Enter a name for the new category")
        else:
            t = run(controller.add_transaction(
                tx_type,
                amount,
                category=None if main_id == "custom" else category_id,
                currency=currency,
                on=on,
                note=note,
                new_category_name=new_name if main_id == "custom" else None,
            ))
            if t is None:
                st.error("Enter a positive amount")
            else:
                st.success("✅ Transaction added!")
                st.rerun()

elif menu == "🧾 History":
    st.subheader("🧾 History")
    history = state.history()
    if not history:
        st.info("No transactions yet.")
    for t in history:
        cat = get_category(registry, t.category)
        main = get_category(registry, t.main_category)
        sign = "+" if t.type == INCOME else "-"
        left, right = st.columns([5, 1])
        with left:
            path = cat.name if cat.id == main.id else f"{main.name} › {cat.name}"
            st.markdown(f"**{cat_label(main)}** {path}  \n{format_date(t.date)} {t.note}")
            st.markdown(f"{sign}{format_currency(t.amount, t.currency)}")
        with right:
            if st.button("🗑", key=f"del_tx_{t.id}"):
                run(controller.remove_transaction(t.id))
                st.rerun()

elif menu == "📊 Statistics":
    st.subheader("🎯 Budget Control (this month)")
    rows = state.budget_control()
    if not rows:
        st.info("No monthly limits configured. Set one in Settings.")
    for row in rows:
        icon = "🔴" if row.level == "danger" else "🟠" if row.level == "warning" else "🟢"
        st.write(f"{icon} **{cat_label(row.category)}**: "
                 f"{format_currency(row.spent)} / {format_currency(row.limit)}")
        st.progress(row.percentage / 100)
        if row.over_budget:
            st.caption(f"Over by {format_currency(abs(row.remaining))}!")
        else:
            st.caption(f"{format_currency(row.remaining)} left")

    st.divider()

    series = state.monthly_series()
    if series:
        months = [format_month(p.month) for p in series]
        fig_ts = go.Figure()
        fig_ts.add_trace(go.Scatter(x=months, y=[p.income for p in series], mode="lines+markers", name="Income"))
        fig_ts.add_trace(go.Scatter(x=months, y=[p.expense for p in series], mode="lines+markers", name="Expenses"))
        fig_ts.update_layout(title="Monthly trend", margin=dict(t=40, b=10, l=10, r=10))
        st.plotly_chart(fig_ts, use_container_width=True)

    breakdown = state.category_breakdown()
    if breakdown:
        df_cat = pd.DataFrame(
            [{"Category": s.name, "Total": s.value, "color": s.color} for s in breakdown]
        )
        fig_cat = px.pie(
            df_cat,
            values="Total",
            names="Category",
            color="Category",
            color_discrete_map=dict(zip(df_cat["Category"], df_cat["color"])),
            title="Expenses by category",
        )
        st.plotly_chart(fig_cat, use_container_width=True)
        st.table(df_cat[["Category", "Total"]].assign(Total=df_cat["Total"].map(format_currency)))
    else:
        st.info("No expenses to analyze")

elif menu == "⚙️ Settings":
    st.subheader("➕ New Category")
    with st.form("category_form", clear_on_submit=True):
        name = st.text_input("Name")
        cat_type = st.selectbox("Type", [EXPENSE, INCOME], format_func=TYPE_LABELS.get)
        icon = st.text_input("Icon", value="📌")
        color = st.color_picker("Color", value="#95A5A6")
        image = st.file_uploader("Or upload an image", type=["png", "jpg", "jpeg", "gif"])
        if st.form_submit_button("Add Category"):
            is_image = image is not None
            if is_image:
                icon = f"data:{image.type};base64,{base64.b64encode(image.getvalue()).decode()}"
            if run(controller.add_category(name, cat_type, icon, color, is_image)):
                st.rerun()
            st.error("A name is required")

    st.subheader("↳ New Subcategory")
    all_mains = main_categories(registry, EXPENSE) + main_categories(registry, INCOME)
    with st.form("subcategory_form", clear_on_submit=True):
        parent_id = st.selectbox(
            "Parent", [c.id for c in all_mains], format_func=lambda cid: cat_label(get_category(registry, cid))
        )
        sub_name = st.text_input("Subcategory name")
        if st.form_submit_button("Add Subcategory"):
            if run(controller.add_subcategory(sub_name, parent_id)):
                st.rerun()
            st.error("A name is required")

    st.subheader("🎯 Monthly Limit")
    expense_mains = main_categories(registry, EXPENSE)
    with st.form("limit_form", clear_on_submit=True):
        limit_cat = st.selectbox(
            "Category", [c.id for c in expense_mains], format_func=lambda cid: cat_label(get_category(registry, cid))
        )
        limit = st.text_input("Limit (ARS, 0 clears it)")
        if st.form_submit_button("Set Limit"):
            if run(controller.set_limit(limit_cat, limit)):
                st.rerun()
            st.error("Enter a non-negative number")

    st.subheader("🗂 Categories")
    for main in all_mains:
        rows = [(main, f"**{cat_label(main)}**" + (" (default)" if main.is_default else ""))]
        rows += [(sub, f"↳ {sub.name}") for sub in subcategories(registry, main.id)]
        for cat, label in rows:
            cols = st.columns([5, 1])
            cols[0].markdown(label)
            if can_delete_category(registry, cat.id, state.transactions):
                if cols[1].button("🗑", key=f"del_cat_{cat.id}"):
                    run(controller.delete_category(cat.id))
                    st.rerun()
