"""
Streamlit Dashboard for PROPRED
Tracked predictions, settled results, and manual settlement
"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pandas as pd
import streamlit as st

from dashboard.utils import api_get, api_post, RESULT_ICONS

st.set_page_config(
    page_title="PROPRED",
    page_icon="⚽",
    layout="wide",
    initial_sidebar_state="expanded",
)

PREDICTION_COLUMNS = [
    "date", "homeTeam", "awayTeam", "tip", "tipType", "conf", "result",
    "homeGoals", "awayGoals",
]


def _frame(rows) -> pd.DataFrame:
    df = pd.DataFrame(rows)
    if df.empty:
        return df
    df = df[[c for c in PREDICTION_COLUMNS if c in df.columns]]
    if "result" in df.columns:
        df["result"] = df["result"].map(lambda r: f"{RESULT_ICONS.get(r, '')} {r}" if r else "pending")
    return df


# ==============================================================================
# SIDEBAR
# ==============================================================================

with st.sidebar:
    st.title("⚽ PROPRED")
    st.caption("See sidebar pages for Calibration.")
    st.markdown("---")

    health = api_get("/health")
    if health:
        st.metric("Predictions", health["predictions"])
        st.metric("Resolved", health["resolved"])
        rate = health.get("overallRate")
        st.metric("Overall Win Rate", f"{rate}%" if rate is not None else "N/A")
        st.metric("Teams in Memory", health["teams"])

    st.markdown("---")
    if st.button("Auto-resolve finished fixtures"):
        summary = api_post("/predictions/auto-resolve")
        if summary:
            st.success(f"Checked {summary['checked']}, resolved {summary['resolved']}")
            for err in summary.get("errors", []):
                st.warning(err)


# ==============================================================================
# MAIN
# ==============================================================================

st.title("Predictions")

limit = st.slider("Show last", min_value=10, max_value=200, value=50, step=10)
recent = api_get("/predictions/recent", {"limit": limit}) or []
pending = [p for p in recent if not p.get("result")]

c1, c2 = st.columns(2)
c1.metric("Pending", len(pending))
c2.metric("Settled (shown)", len(recent) - len(pending))

st.subheader("Recent Predictions")
if recent:
    st.dataframe(_frame(recent), hide_index=True, use_container_width=True)
else:
    st.info("No predictions tracked yet.")

st.subheader("Latest Results")
results = api_get("/predictions/results", {"limit": 20}) or []
if results:
    st.dataframe(_frame(results), hide_index=True, use_container_width=True)
else:
    st.info("No predictions resolved yet.")

# ==============================================================================
# MANUAL SETTLEMENT
# ==============================================================================

st.markdown("---")
st.subheader("Settle a Prediction")

if pending:
    labels = {
        f"{p.get('homeTeam')} vs {p.get('awayTeam')} | {p.get('tip')}": p["fixtureId"]
        for p in pending
    }
    with st.form("resolve_form"):
        choice = st.selectbox("Fixture", list(labels))
        col_h, col_a = st.columns(2)
        home_goals = col_h.number_input("Home goals", min_value=0, step=1, value=0)
        away_goals = col_a.number_input("Away goals", min_value=0, step=1, value=0)
        submitted = st.form_submit_button("Resolve")

    if submitted:
        body = api_post("/predictions/resolve", {
            "fixtureId": labels[choice],
            "homeGoals": int(home_goals),
            "awayGoals": int(away_goals),
        })
        if body:
            result = body["resolved"]["result"]
            st.success(f"{RESULT_ICONS.get(result, '')} Settled as {result.upper()}")
else:
    st.info("Nothing pending.")
