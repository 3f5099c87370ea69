from contextlib import contextmanager
from typing import Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from parts_core.charts import member_difference_chart
from parts_core.data import VIEWS
from parts_core.errors import EmptyDatasetFailure, LoadFailure, ParseFailure
from parts_core.filters import QueryFilters, normalize_filters
from parts_core.metrics_debug import compute_debug
from parts_core.metrics_duplicates import member_rows, report_frame
from parts_core.query import GROUP_COLUMNS, group_row
from parts_core.session import DatasetSession

alt.data_transformers.disable_max_rows()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(filters: QueryFilters) -> str:
    chips = [
        f"Part: {filters.identifier_contains}" if filters.identifier_contains else "Part: All",
        f"Location: {filters.location_contains}" if filters.location_contains else "Location: All",
    ]
    if filters.planner_contains:
        chips.append(f"Planner: {filters.planner_contains}")
    if filters.column_non_zero:
        chips.append(f"Non-zero: {filters.column_non_zero}")
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filters: QueryFilters, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{format_filter_summary(filters)}</div>", unsafe_allow_html=True)


def get_sessions() -> Dict[str, DatasetSession]:
    if "sessions" not in st.session_state:
        st.session_state["sessions"] = {name: DatasetSession(view) for name, view in VIEWS.items()}
    return st.session_state["sessions"]


def render_sort_controls(session: DatasetSession, columns: List[str]):
    c1, c2 = st.columns([6, 2])
    key = c1.selectbox("Sort column", options=columns, key=f"sort_col_{session.view.name}")
    if c2.button("Sort / reverse", key=f"sort_btn_{session.view.name}"):
        session.sort(key)
    state = session.sort_state
    if state.is_sorted:
        arrow = "↑" if state.direction == "asc" else "↓"
        st.caption(f"Sorted by {state.key} {arrow}")


# ---------- UI setup ----------
st.set_page_config(page_title="Parts Inventory Analysis", layout="wide")
inject_base_styles()
st.title("Parts Inventory Analysis")
st.caption("Analyze duplicate parts and variance data across locations.")

sessions = get_sessions()

with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", [v.title for v in VIEWS.values()] + ["Data Quality"], index=0)
    view_name = next((name for name, v in VIEWS.items() if v.title == nav_choice), "duplicates")
    session = sessions[view_name]

    st.markdown("---")
    if st.button("Reload dataset") or session.status == "idle":
        session.load()

if session.status in {"failed", "empty"}:
    err = session.error
    if isinstance(err, EmptyDatasetFailure):
        st.warning(f"No data: {err}")
    elif isinstance(err, ParseFailure):
        st.error(f"Bad data: {err}")
    elif isinstance(err, LoadFailure):
        st.error(f"Could not load dataset: {err}")
    st.stop()

ctx = session.ctx

with st.sidebar:
    st.markdown("### Filters")
    identifier_q = st.text_input("Part Number", "")
    location_q = ""
    planner_q = ""
    non_zero_col = ""
    if session.view.location_column:
        location_q = st.selectbox("Location", [""] + session.get_available_locations(), format_func=lambda v: v or "All Locations")
    if session.view.planner_column:
        planner_q = st.text_input("Planner", "")
    if not session.view.grouped:
        label = "Location" if not session.view.planner_column else "Variance"
        non_zero_col = st.selectbox(label, [""] + session.get_available_metric_columns(), format_func=lambda v: v or f"All {label}s")

filters = normalize_filters(
    {
        "identifier_contains": identifier_q,
        "location_contains": location_q,
        "planner_contains": planner_q,
        "column_non_zero": non_zero_col,
    }
)


def render_duplicates_page():
    groups = session.get_duplicate_report(filters)
    render_page_header("Duplicate Parts Analyzer", "Home / Duplicate Parts", filters, export_df=report_frame(groups), export_name="duplicates.csv")
    with card("Summary"):
        cols = st.columns(3)
        cols[0].metric("Duplicate parts", f"{len(ctx.get('duplicates', []))}")
        cols[1].metric("Filtered results", f"{len(groups)}")
        cols[2].metric("Data quality warnings", f"{len(ctx.get('warnings', ()))}")

    with card("Parts by dispersion"):
        if not groups:
            st.info("No duplicate parts found matching your filters.")
            return
        render_sort_controls(session, GROUP_COLUMNS)
        groups = session.get_duplicate_report(filters)
        st.dataframe(pd.DataFrame([group_row(g) for g in groups]), use_container_width=True, hide_index=True)

    with card("Count matrix"):
        chosen = st.selectbox("Part", options=[g.part_id for g in groups])
        group = next(g for g in groups if g.part_id == chosen)
        members = pd.DataFrame(member_rows(group))
        st.dataframe(members, use_container_width=True, hide_index=True)
        st.altair_chart(member_difference_chart(members, group.stats.mean), use_container_width=True)
        st.caption(f"Mean {group.stats.mean:,.2f} · Std Dev {group.stats.std_dev:,.2f} · Range {group.stats.range:,.0f}")


def render_matrix_page():
    title = f"{session.view.title} Matrix Viewer"
    header = st.container()
    summary = st.container()
    with card("Matrix"):
        render_sort_controls(session, list(ctx.get("columns", [])))
        export_df = pd.DataFrame(session.get_flat_view(filters), columns=ctx.get("columns"))
        if export_df.empty:
            st.info("No data found matching your filters.")
        else:
            st.dataframe(export_df, use_container_width=True, hide_index=True)
    # header and summary fill their slots once the sort state is final
    with header:
        render_page_header(title, f"Home / {session.view.title}", filters, export_df=export_df, export_name=f"{view_name}.csv")
    with summary:
        with card("Summary"):
            cols = st.columns(2)
            cols[0].metric("Total parts", f"{len(ctx.get('rows', []))}")
            cols[1].metric("Filtered results", f"{len(export_df)}")


def render_debug_page():
    render_page_header("Data Quality", "Home / Data Quality", filters)
    for name, s in sessions.items():
        if not s.is_loaded:
            continue
        with card(s.view.title):
            payload = compute_debug(s.ctx)
            st.write(payload["row_counts"])
            st.write(payload["cleaning_checks"])
            if payload["warning_samples"]:
                st.dataframe(pd.DataFrame(payload["warning_samples"]), hide_index=True)
            if payload["single_location_samples"]:
                st.caption("Parts counted at a single location")
                st.dataframe(pd.DataFrame(payload["single_location_samples"]), hide_index=True)


if nav_choice == "Data Quality":
    render_debug_page()
elif session.view.grouped:
    render_duplicates_page()
else:
    render_matrix_page()
