"""
RISE Assessment Dashboard

Interactive Streamlit dashboard for a RISE results CSV. Upload a file, enter
the dataset year, and browse proficiency, subject-area and demographic
summaries.

Features:
- Upload validation (file present, year within range) with readable errors
- Yearly metrics: average scale score, ELA and Math pass rates
- ELA / Math proficiency distribution by grade
- Subject-area performance level distribution
- Special Ed comparison per subject area
- Average scale score by demographic group
"""

import logging
import re
from typing import Dict, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from analysis import Demographic
from config import (
    CHART_PALETTE,
    ELA_LEVELS_ORDERED,
    MATH_LEVELS_ORDERED,
    MAX_YEAR,
    MIN_YEAR,
    NOT_APPLICABLE_COLOR,
    PROFICIENCY_COLORS,
)
from upload import UploadResponse, handle_upload

# Custom CSS
PAGE_CSS = """
<style>
    .metric-card {
        background-color: #f8f9fa;
        border-radius: 10px;
        padding: 20px;
        margin: 10px 0;
        box-shadow: 0 2px 4px rgba(0,0,0,0.1);
    }
    .primary-metric {
        background-color: #e3f2fd;
        border-left: 4px solid #1976d2;
        padding: 10px;
        margin: 5px 0;
    }
</style>
"""

VIEWS = [
    "Yearly Metrics",
    "ELA Proficiency",
    "Math Proficiency",
    "Subject Performance",
    "Special Ed Comparison",
    "Demographics",
]

DEMOGRAPHIC_TITLES = {
    Demographic.ETHNICITY: "Ethnicity",
    Demographic.GENDER: "Gender",
    Demographic.GRADE_LEVEL: "Grade Level",
    Demographic.OVERALL_PERFORMANCE: "Overall Performance (CSV)",
    Demographic.ELA_PROFICIENCY: "RISE ELA Proficiency",
    Demographic.MATH_PROFICIENCY: "Math Proficiency",
    Demographic.ELL: "ELL",
    Demographic.SPECIAL_ED: "Special Ed",
}


# ==================== DATA LOADING ====================

@st.cache_data(show_spinner=False)
def run_analysis(content: bytes, file_name: str, year: int) -> UploadResponse:
    """Analyze an upload (with caching so switching views does not re-parse)."""
    return handle_upload(content, file_name, year)


# ==================== HELPER FUNCTIONS ====================

def sort_grades(grades: List[str]) -> List[str]:
    """
    Sort grade labels numerically, non-numeric labels last.
    E.g., ["10", "3", "K", "04"] -> ["3", "04", "10", "K"]
    """
    def sort_key(grade):
        match = re.match(r'^\s*(\d+)\s*$', str(grade))
        if match:
            return (0, int(match.group(1)), str(grade))
        return (1, 0, str(grade))

    return sorted(grades, key=sort_key)


def order_levels(present: List[str], ordered: List[str]) -> List[str]:
    """Known levels in their configured order, then any others alphabetically."""
    known = [level for level in ordered if level in present]
    extra = sorted(level for level in set(present) if level not in ordered)
    return known + extra


def get_level_color(level: str, index: int) -> str:
    """Return the configured color for a proficiency band."""
    if level in PROFICIENCY_COLORS:
        return PROFICIENCY_COLORS[level]
    if level.startswith("N/A"):
        return NOT_APPLICABLE_COLOR
    return CHART_PALETTE[index % len(CHART_PALETTE)]


def get_special_ed_subjects(data_by_special_ed: Dict[bool, dict], year: int) -> List[str]:
    """Subject areas with a Special Ed comparison for the year."""
    subjects = set()
    for by_year in data_by_special_ed.values():
        subjects.update(by_year.get(year, {}).keys())
    return sorted(subjects)


# ==================== CHART FUNCTIONS ====================

def create_proficiency_distribution_chart(year_data: Dict[str, Dict[str, int]],
                                          ordered_levels: List[str],
                                          title: str) -> go.Figure:
    """Create grouped bar chart of students per proficiency band for each grade."""
    grades = sort_grades(list(year_data.keys()))
    present = [level for counts in year_data.values() for level in counts]

    fig = go.Figure()
    for i, level in enumerate(order_levels(present, ordered_levels)):
        fig.add_trace(go.Bar(
            name=level,
            x=grades,
            y=[year_data[grade].get(level, 0) for grade in grades],
            marker_color=get_level_color(level, i)
        ))

    fig.update_layout(
        title=title,
        barmode='group',
        xaxis_title="Grade Level",
        yaxis_title="Number of Students",
        xaxis=dict(type='category'),
        height=450
    )

    return fig


def create_subject_performance_chart(year_data: Dict[str, Dict[str, int]], title: str) -> go.Figure:
    """Create grouped bar chart of performance levels per subject area."""
    subject_areas = list(year_data.keys())
    levels = sorted({level for counts in year_data.values() for level in counts})

    fig = go.Figure()
    for i, level in enumerate(levels):
        fig.add_trace(go.Bar(
            name=level,
            x=subject_areas,
            y=[year_data[area].get(level, 0) for area in subject_areas],
            marker_color=CHART_PALETTE[i % len(CHART_PALETTE)]
        ))

    fig.update_layout(
        title=title,
        barmode='group',
        xaxis_title="Subject Area (from CSV columns)",
        yaxis_title="Number of Students",
        xaxis_tickangle=-30,
        height=500
    )

    return fig


def create_pass_rate_chart(pass_rate: float, title: str) -> go.Figure:
    """Create donut chart of passing vs not passing students."""
    fig = go.Figure(go.Pie(
        labels=["Passing (Proficient / Highly Proficient)", "Not Passing"],
        values=[pass_rate, max(0.0, 100.0 - pass_rate)],
        hole=0.5,
        marker_colors=[PROFICIENCY_COLORS["Proficient"], PROFICIENCY_COLORS["Below Proficient"]],
        sort=False,
        hovertemplate='%{label}: %{value:.2f}%<extra></extra>'
    ))

    fig.update_layout(title=title, height=400)
    return fig


def create_special_ed_chart(data_by_special_ed: Dict[bool, dict],
                            year: int,
                            subject_area: str) -> Optional[go.Figure]:
    """Create bar chart comparing Special Ed and non-Special Ed averages for one subject area."""
    non_sped = data_by_special_ed.get(False, {}).get(year, {}).get(subject_area)
    sped = data_by_special_ed.get(True, {}).get(year, {}).get(subject_area)

    if non_sped is None and sped is None:
        return None

    labels = ["Non-Special Ed", "Special Ed"]
    values = [non_sped or 0, sped or 0]

    fig = go.Figure(go.Bar(
        x=labels,
        y=values,
        marker_color=CHART_PALETTE[:2],
        text=[f"{v:.2f}" for v in values],
        textposition='outside'
    ))

    fig.update_layout(
        title=f"Avg. Overall Scale Score by Special Ed Status: {subject_area} ({year})",
        yaxis_title="Average Overall Scale Score",
        height=400
    )

    return fig


def create_demographic_chart(year_data: Dict[str, float], title: str) -> go.Figure:
    """Create horizontal bar chart of average scale score per group."""
    df = pd.DataFrame({
        'Group': list(year_data.keys()),
        'Average Scale Score': list(year_data.values()),
    })

    fig = px.bar(
        df,
        x='Average Scale Score',
        y='Group',
        orientation='h',
        text_auto='.2f',
        color_discrete_sequence=CHART_PALETTE
    )

    fig.update_layout(
        title=title,
        yaxis_title="",
        height=max(300, len(df) * 45)
    )

    return fig


# ==================== MAIN DASHBOARD ====================

def render_summary(data: dict):
    """Top-of-page metrics for the uploaded dataset."""
    year = data['dataset_year']

    col1, col2, col3, col4, col5 = st.columns(5)
    with col1:
        st.metric("Records Processed", data['total_records_processed'])
    with col2:
        st.metric("Students", data['total_students'])
    with col3:
        avg = data['average_scale_score_by_year'].get(year)
        st.metric("Avg Scale Score", f"{avg:.2f}" if avg is not None else "N/A")
    with col4:
        rate = data['ela_pass_rate_by_year'].get(year)
        st.metric("ELA Pass Rate", f"{rate:.2f}%" if rate is not None else "N/A")
    with col5:
        rate = data['math_pass_rate_by_year'].get(year)
        st.metric("Math Pass Rate", f"{rate:.2f}%" if rate is not None else "N/A")


def main():
    st.set_page_config(
        page_title="RISE Assessment Dashboard",
        page_icon="📊",
        layout="wide",
        initial_sidebar_state="expanded"
    )
    st.markdown(PAGE_CSS, unsafe_allow_html=True)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    st.title("RISE Assessment Dashboard")

    # Sidebar upload form
    st.sidebar.title("Upload Data")
    uploaded_file = st.sidebar.file_uploader("RISE results CSV", type=["csv"])
    year = st.sidebar.number_input(
        "Dataset Year", min_value=MIN_YEAR, max_value=MAX_YEAR, value=2023, step=1
    )

    if st.sidebar.button("Analyze", type="primary", use_container_width=True):
        if uploaded_file is None:
            st.sidebar.error("Please select a CSV file.")
        else:
            with st.spinner("Analyzing..."):
                st.session_state.upload_response = run_analysis(
                    uploaded_file.getvalue(), uploaded_file.name, int(year)
                )

    response = st.session_state.get("upload_response")
    if response is None:
        st.info("Upload a RISE results CSV and enter the dataset year to get started.")
        return

    if response.error:
        st.error(response.error)
        return

    data = response.body
    if 'message' in data:
        st.warning(data['message'])
        return

    dataset_year = data['dataset_year']
    st.success(f"Successfully processed {data['file_name']} for year {dataset_year}.")
    render_summary(data)
    st.divider()

    st.sidebar.markdown("---")
    st.sidebar.title("Navigation")
    view = st.sidebar.radio("Select View:", VIEWS)

    # ==================== YEARLY METRICS ====================
    if view == "Yearly Metrics":
        st.header("Yearly Metrics")

        col1, col2 = st.columns(2)
        with col1:
            ela_rate = data['ela_pass_rate_by_year'].get(dataset_year)
            if ela_rate is not None:
                st.plotly_chart(
                    create_pass_rate_chart(ela_rate, f"ELA Pass Rate ({dataset_year})"),
                    use_container_width=True
                )
            else:
                st.warning(f"No ELA pass rate data for year {dataset_year}.")
        with col2:
            math_rate = data['math_pass_rate_by_year'].get(dataset_year)
            if math_rate is not None:
                st.plotly_chart(
                    create_pass_rate_chart(math_rate, f"Math Pass Rate ({dataset_year})"),
                    use_container_width=True
                )
            else:
                st.warning(f"No Math pass rate data for year {dataset_year}.")

        st.subheader("Average Overall Scale Score by Subject Area")
        by_subject = data['average_scale_score_by_subject_area_by_year'].get(dataset_year, {})
        if by_subject:
            st.plotly_chart(
                create_demographic_chart(by_subject, f"Average Scale Score by Subject Area ({dataset_year})"),
                use_container_width=True
            )
        else:
            st.caption("No subject-area columns in this file.")

    # ==================== ELA PROFICIENCY ====================
    elif view == "ELA Proficiency":
        st.header("RISE ELA Proficiency")
        year_data = data['ela_proficiency_distribution_by_grade_by_year'].get(dataset_year, {})
        if year_data:
            st.plotly_chart(create_proficiency_distribution_chart(
                year_data, ELA_LEVELS_ORDERED,
                f"RISE ELA Proficiency Distribution by Grade ({dataset_year})"
            ), use_container_width=True)
        else:
            st.warning(f"No RISE ELA proficiency distribution data for year {dataset_year}.")

    # ==================== MATH PROFICIENCY ====================
    elif view == "Math Proficiency":
        st.header("Math Proficiency")
        year_data = data['math_proficiency_distribution_by_grade_by_year'].get(dataset_year, {})
        if year_data:
            st.plotly_chart(create_proficiency_distribution_chart(
                year_data, MATH_LEVELS_ORDERED,
                f"Math Proficiency Distribution by Grade ({dataset_year})"
            ), use_container_width=True)
        else:
            st.warning(f"No Math proficiency distribution data for year {dataset_year}.")

    # ==================== SUBJECT PERFORMANCE ====================
    elif view == "Subject Performance":
        st.header("Subject Area Performance")
        year_data = data['subject_performance_distribution_by_year'].get(dataset_year, {})
        if year_data:
            st.plotly_chart(create_subject_performance_chart(
                year_data,
                f"Distribution of Performance Levels by Subject Area ({dataset_year})"
            ), use_container_width=True)

            rows = [
                {'Subject Area': area, 'Performance Level': level, 'Students': count}
                for area, counts in year_data.items()
                for level, count in counts.items()
            ]
            st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
        else:
            st.warning(f"No subject area performance distribution data for year {dataset_year}.")

    # ==================== SPECIAL ED COMPARISON ====================
    elif view == "Special Ed Comparison":
        st.header("Special Ed Comparison")
        by_special_ed = data['average_scale_score_by_special_ed_and_subject_area_by_year']
        subjects = get_special_ed_subjects(by_special_ed, dataset_year)

        if subjects:
            selected_subject = st.selectbox("Subject Area", subjects)
            fig = create_special_ed_chart(by_special_ed, dataset_year, selected_subject)
            if fig is not None:
                st.plotly_chart(fig, use_container_width=True)
            else:
                st.warning(
                    f"No data for {selected_subject} in {dataset_year} to compare Special Ed status."
                )
        else:
            st.warning(f"No data for Special Ed comparison for year {dataset_year}.")

        overall = data['average_scale_score_by_special_ed_by_year'].get(dataset_year, {})
        if overall:
            st.subheader("Overall Average Scale Score by Special Ed Status")
            st.dataframe(
                pd.DataFrame({'Special Ed': list(overall.keys()), 'Average Scale Score': list(overall.values())}),
                use_container_width=True,
                hide_index=True
            )

    # ==================== DEMOGRAPHICS ====================
    elif view == "Demographics":
        st.header("Average Scale Score by Demographic")
        dimension = st.selectbox(
            "Group By",
            list(Demographic),
            format_func=lambda d: DEMOGRAPHIC_TITLES[d]
        )
        year_data = data[f"average_scale_score_by_{dimension.value}_by_year"].get(dataset_year, {})
        if year_data:
            st.plotly_chart(create_demographic_chart(
                year_data,
                f"Average Overall Scale Score by {DEMOGRAPHIC_TITLES[dimension]} ({dataset_year})"
            ), use_container_width=True)
        else:
            st.warning(f"No {DEMOGRAPHIC_TITLES[dimension]} data for year {dataset_year}.")


if __name__ == "__main__":
    main()
