"""
Chai Vision Dashboard - Streamlit page over the sales engine

Run with: streamlit run chai_vision/dashboard_app.py
"""
import streamlit as st

from chai_vision.cli import ChaiVisionApp
from chai_vision.components.charts import (
    create_contribution_chart,
    create_growth_chart,
    create_target_chart,
    create_trend_chart
)
from chai_vision.display_utils import (
    achievement_status, format_currency, format_growth, format_percent,
    growth_frame, kpi_label, targets_frame
)
from chai_vision.errors import ChaiVisionError
from chai_vision.models import GroupField
from chai_vision.periods import current_selection
from chai_vision.registry import ALL_BRANDS_LABELS

MONTH_NAMES = ['January', 'February', 'March', 'April', 'May', 'June', 'July',
               'August', 'September', 'October', 'November', 'December']
STATUS_ICON = {'success': '🟢', 'warning': '🟡', 'danger': '🔴', 'neutral': '⚪'}

st.set_page_config(
    page_title="Chai Vision",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Initialize session state
if 'app' not in st.session_state:
    st.session_state.app = ChaiVisionApp()

service = st.session_state.app.service

st.title("📈 Chai Vision")
st.markdown("### Sales Performance Dashboard")

# Sidebar selection
defaults = current_selection(service.today)
with st.sidebar:
    view = st.radio("View", ['annual', 'quarterly', 'monthly'], format_func=str.title)
    years = service.year_options()
    year = st.selectbox("Year", years, index=years.index(service.default_year()))
    quarter = month = None
    if view == 'quarterly':
        quarter = st.selectbox("Quarter", [1, 2, 3, 4], index=defaults['quarter'] - 1,
                               format_func=lambda q: f"Q{q}")
    elif view == 'monthly':
        month = st.selectbox("Month", list(range(1, 13)), index=defaults['month'] - 1,
                             format_func=lambda m: MONTH_NAMES[m - 1])
    brand = st.selectbox("Brand", [ALL_BRANDS_LABELS[1]] + service.registry.brands)
    selected_channels = st.multiselect("Channels", service.registry.channels)
    compare_mode = st.radio("Compare with", ['yoy', 'pop'],
                            format_func=lambda m: 'Last year' if m == 'yoy' else 'Previous period')

    if st.button("🔄 Reload data"):
        with st.spinner("Reloading sales data..."):
            service.reload()
        st.rerun()

try:
    result = service.build_view(
        view, year, quarter=quarter, month=month,
        brand=brand, channels=selected_channels or None,
        group_by=GroupField.CHANNEL, compare_mode=compare_mode,
    )
except ChaiVisionError as e:
    st.error(f"Error: {str(e)}")
    st.stop()

loaded = service.load()
if loaded.errors:
    st.warning(f"⚠️ {len(loaded.errors)} of {loaded.total_rows} rows were skipped during import")

st.markdown(f"#### {result.period.label}")

# KPI cards
summary = result.summary
cols = st.columns(4)
with cols[0]:
    st.metric("Total Revenue", format_currency(summary.total_revenue))
with cols[1]:
    icon = STATUS_ICON[achievement_status(summary.achievement_percent)]
    st.metric("Target", format_currency(summary.target),
              f"{icon} {format_percent(summary.achievement_percent)} achieved", delta_color="off")
with cols[2]:
    icon = STATUS_ICON[achievement_status(summary.kpi_achievement_percent)]
    st.metric(kpi_label(service.kpi_settings.threshold), format_currency(summary.kpi_target),
              f"{icon} {format_percent(summary.kpi_achievement_percent)}", delta_color="off")
with cols[3]:
    st.metric("Projected", format_currency(summary.projections.get('realistic')),
              f"{summary.days_remaining} days left", delta_color="off")

st.markdown("---")

tab_targets, tab_trend, tab_growth = st.tabs(["🎯 Channels vs Target", "📈 Trend", "📊 Growth"])

with tab_targets:
    col1, col2 = st.columns([2, 1])
    with col1:
        st.plotly_chart(create_target_chart(result.targets, result.aggregate.group_by),
                        use_container_width=True)
    with col2:
        st.plotly_chart(create_contribution_chart(result.aggregate), use_container_width=True)

    df = targets_frame(result.targets, result.aggregate.group_by)
    display_df = df.copy()
    display_df['actual'] = df['actual'].map(lambda v: format_currency(v, compact=False))
    display_df['target'] = df['target'].map(lambda v: format_currency(v, compact=False))
    display_df['performance_percent'] = df['performance_percent'].map(format_percent)
    st.dataframe(display_df, use_container_width=True, hide_index=True)
    st.download_button("📥 Download CSV", df.to_csv(index=False),
                       file_name=f"targets_{result.period.label}.csv", mime="text/csv")

with tab_trend:
    grain = GroupField.DATE if view == 'monthly' else GroupField.MONTH
    trend = service.trend(result.period, grain, brand=brand, channels=selected_channels or None)
    st.plotly_chart(create_trend_chart(trend), use_container_width=True)

with tab_growth:
    comparison = result.comparison
    st.plotly_chart(create_growth_chart(comparison), use_container_width=True)
    if comparison.total is not None:
        st.metric(f"Total vs {comparison.prior.period.label}",
                  format_currency(comparison.total.current),
                  format_growth(comparison.total.growth_percent))
    growth_df = growth_frame(comparison)
    growth_df['growth_percent'] = growth_df['growth_percent'].map(format_growth)
    st.dataframe(growth_df, use_container_width=True, hide_index=True)
