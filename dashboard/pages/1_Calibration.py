"""Confidence Calibration page."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from dashboard.utils import api_get, api_post

st.set_page_config(page_title="Calibration | PROPRED", layout="wide")

st.title("Confidence Calibration")
st.caption(
    "A well-calibrated model's 65% tips should win ~65% of the time. "
    "Bands above the diagonal are under-confident, bands below it over-confident."
)

if st.button("Rebuild from stored predictions"):
    api_post("/calibration/rebuild")

calib = api_get("/calibration")

if not calib or not calib.get("buckets"):
    st.info("No resolved (non-push) predictions yet.")
    st.stop()

overall = calib.get("overall", {})

# --- Header metrics ---
c1, c2, c3 = st.columns(3)
c1.metric("Overall Win Rate", f"{overall.get('rate')}%" if overall.get("rate") is not None else "N/A")
c2.metric("Resolved (excl. push)", overall.get("total", 0))
c3.metric("Last Built", (calib.get("lastBuilt") or "")[:19].replace("T", " "))

st.markdown("---")

df = pd.DataFrame([
    {
        "band": f"{band}+" if band == "90" else f"{band}-{int(band) + 10}",
        "predicted": b["predicted"],
        "actual": b["actualRate"],
        "total": b["total"],
        "wins": b["wins"],
        "error": b["error"],
    }
    for band, b in sorted(calib["buckets"].items(), key=lambda kv: int(kv[0]))
])

# --- Calibration curve ---
st.subheader("Calibration Curve")
fig = go.Figure()

fig.add_trace(go.Scatter(
    x=[0, 100], y=[0, 100],
    mode="lines", name="Perfect calibration",
    line=dict(dash="dash", color="gray"),
))

fig.add_trace(go.Scatter(
    x=df["predicted"],
    y=df["actual"],
    mode="markers+lines",
    name="Tips",
    marker=dict(
        size=df["total"].clip(5, 40),
        sizemode="area",
        color=df["error"],
        colorscale="RdYlGn",
        showscale=True,
        colorbar=dict(title="Error"),
    ),
    hovertemplate=(
        "Band: %{customdata[0]}<br>"
        "Predicted: %{x}%<br>"
        "Actual: %{y}%<br>"
        "n=%{customdata[1]}<extra></extra>"
    ),
    customdata=list(zip(df["band"], df["total"])),
))

fig.update_layout(
    xaxis=dict(title="Confidence (%)", range=[0, 100]),
    yaxis=dict(title="Actual Win Rate (%)", range=[0, 100]),
    height=420,
)
st.plotly_chart(fig, use_container_width=True)

# --- Band table ---
st.subheader("Band Detail")
st.dataframe(
    df.rename(columns={
        "band": "Band", "predicted": "Predicted %", "actual": "Actual %",
        "total": "Sample (n)", "wins": "Wins", "error": "Error",
    }),
    hide_index=True, use_container_width=True,
)

# --- By tip type ---
st.subheader("By Tip Type")
by_type = pd.DataFrame([
    {"tip type": t, "wins": v["wins"], "total": v["total"], "rate %": v["rate"]}
    for t, v in calib.get("byType", {}).items()
])
if not by_type.empty:
    st.dataframe(by_type.sort_values("total", ascending=False), hide_index=True, use_container_width=True)
