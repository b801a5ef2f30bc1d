"""Shared utilities for all dashboard pages."""

import os
import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()

_API_URL = os.getenv("API_URL", "http://localhost:8000")


def api_get(endpoint: str, params: dict = None):
    try:
        r = requests.get(f"{_API_URL}{endpoint}", params=params, timeout=15)
        r.raise_for_status()
        return r.json()
    except Exception as exc:
        st.error(f"API error: {exc}")
        return None


def _error_detail(exc: requests.HTTPError) -> str:
    """FastAPI's ``detail`` from an error response, or the raw text."""
    if exc.response is None:
        return str(exc)
    try:
        body = exc.response.json()
    except ValueError:
        return exc.response.text or str(exc)
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


def api_post(endpoint: str, payload: dict = None):
    try:
        r = requests.post(f"{_API_URL}{endpoint}", json=payload or {}, timeout=60)
        r.raise_for_status()
        return r.json()
    except requests.HTTPError as exc:
        detail = _error_detail(exc)
        status = exc.response.status_code if exc.response is not None else "error"
        st.error(f"API {status}: {detail}")
        return None
    except Exception as exc:
        st.error(f"Request failed: {exc}")
        return None


RESULT_ICONS = {
    "win":  "✅",
    "loss": "❌",
    "push": "➖",
}
