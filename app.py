import logging
import os
from contextlib import contextmanager
from typing import List, Optional
from urllib.parse import urlencode

import altair as alt
import streamlit as st

from survey_core.charts import export_chart_png
from survey_core.data import DataLoadError, load_survey_data
from survey_core.filters import filter_options
from survey_core.state import SessionState, initial_state, reduce
from survey_core.url_state import query_params
from survey_core.views import compute_topic_view, topic_chart

alt.data_transformers.disable_max_rows()

APP_PASSWORD = os.getenv("SURVEY_APP_PASSWORD") or ""
LOG_LEVEL = os.getenv("SURVEY_LOG_LEVEL") or "INFO"

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("survey_app")


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .subtitle {color: #6b7280;font-size: 0.85rem;margin-top: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 800;color: #111827;}
        .card {border: 1px solid #eee;border-radius: 14px;padding: 14px;background: #ffffff;margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: baseline;margin-bottom: 8px;}
        .card-title {font-weight: 800;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.8rem;color: #666;}
        .overlay-note {margin-top: 10px;padding: 10px;border-radius: 10px;background: #fff7ed;
                       border: 1px solid #fed7aa;color: #9a3412;font-weight: 700;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def password_gate() -> bool:
    """Plain passphrase check; keeps casual visitors out, nothing more."""
    if not APP_PASSWORD or st.session_state.get("_unlocked"):
        return True
    st.markdown("### Enter password")
    entered = st.text_input("Password", type="password", key="_password")
    if st.button("Unlock"):
        if entered == APP_PASSWORD:
            st.session_state["_unlocked"] = True
            st.rerun()
        st.error("Incorrect password.")
    return False


# ---------- URL <-> session state ----------
def _current_search() -> str:
    return urlencode(list(st.query_params.to_dict().items()))


def _write_query_params(state: SessionState) -> None:
    desired = dict(query_params(state.topic_id, state.filters))
    if st.query_params.to_dict() != desired:
        st.query_params.from_dict(desired)


def _widget_key(filter_id: str) -> str:
    return f"flt_{filter_id}"


def _selected_values(state: SessionState, filter_id: str) -> List[str]:
    sel = state.filters.get(filter_id)
    if sel is None:
        return []
    if sel.mode == "multi":
        return list(sel.values)
    if sel.mode == "single" and sel.value:
        return [sel.value]
    return []


def _sync_widgets(state: SessionState) -> None:
    # Runs inside widget callbacks, before the script body re-executes.
    for filter_id, options in st.session_state.get("_filter_options", {}).items():
        st.session_state[_widget_key(filter_id)] = [v for v in _selected_values(state, filter_id) if v in options]


def dispatch(action: dict) -> None:
    state = reduce(st.session_state["survey_state"], action)
    st.session_state["survey_state"] = state
    _sync_widgets(state)


def _on_multiselect(filter_id: str) -> None:
    dispatch({"type": "set_values", "filter_id": filter_id, "values": st.session_state[_widget_key(filter_id)]})


# ---------- UI setup ----------
st.set_page_config(page_title="ESCRS Clinical Trends Survey", layout="wide")
inject_base_styles()

if not password_gate():
    st.stop()

try:
    with st.spinner("Loading survey data…"):
        data_ctx = load_survey_data()
except DataLoadError as exc:
    logger.exception("Survey data failed to load")
    st.error(f"Could not load survey data. {exc}")
    st.stop()

config = data_ctx["config"]
respondents = data_ctx["respondents"]
filter_options_by_id = {f.id: filter_options(respondents, f) for f in config.filters}
st.session_state["_filter_options"] = filter_options_by_id

if "survey_state" not in st.session_state:
    st.session_state["survey_state"] = initial_state(config, _current_search())
    _sync_widgets(st.session_state["survey_state"])

if not config.topics:
    st.error("The survey configuration defines no topics.")
    st.stop()

# ----- Sidebar: filters -----
with st.sidebar:
    st.markdown("### Filters")
    c1, c2 = st.columns(2)
    c1.button("Clear all", on_click=dispatch, args=({"type": "clear_all"},), use_container_width=True)
    c2.button(
        "Reset baseline",
        on_click=dispatch,
        args=({"type": "reset_baseline", "filter_defs": config.filters},),
        use_container_width=True,
    )
    for fdef in config.filters:
        options = filter_options_by_id[fdef.id]
        st.markdown(f"**{fdef.label or fdef.id}**")
        b1, b2 = st.columns(2)
        b1.button(
            "Select all",
            key=f"all_{fdef.id}",
            disabled=not options,
            on_click=dispatch,
            args=({"type": "select_all", "filter_id": fdef.id, "options": options},),
            use_container_width=True,
        )
        b2.button(
            "Clear",
            key=f"clear_{fdef.id}",
            on_click=dispatch,
            args=({"type": "clear_filter", "filter_id": fdef.id},),
            use_container_width=True,
        )
        st.multiselect(
            fdef.label or fdef.id,
            options=options,
            key=_widget_key(fdef.id),
            on_change=_on_multiselect,
            args=(fdef.id,),
            label_visibility="collapsed",
        )

# ----- Topic tabs -----
state: SessionState = st.session_state["survey_state"]
topic_ids = [t.id for t in config.topics]
labels = {t.id: t.short_label or t.label or t.id for t in config.topics}
active = config.topic(state.topic_id)
chosen = st.radio(
    "Topic",
    topic_ids,
    index=topic_ids.index(active.id),
    format_func=lambda tid: labels[tid],
    horizontal=True,
    label_visibility="collapsed",
)
if chosen != state.topic_id:
    dispatch({"type": "select_topic", "topic_id": chosen})
    state = st.session_state["survey_state"]

_write_query_params(state)

# ----- Page -----
payload = compute_topic_view(state, data_ctx, with_chart=False)
chart = topic_chart(payload)

head_left, head_right = st.columns([6, 3])
with head_left:
    st.markdown(
        f"<div class='app-top-bar'><div class='page-title'>{config.dataset.label or 'Survey explorer'}</div>"
        f"<div class='subtitle'>Blank responses excluded. Overlay hidden when filtered n &lt; {payload['threshold']}.</div></div>",
        unsafe_allow_html=True,
    )
with head_right:
    btn_cols = st.columns(2)
    try:
        filename, png = export_chart_png(chart, state.topic_id)
    except Exception as exc:
        logger.warning("PNG export unavailable: %s", exc)
        btn_cols[0].button("Download PNG", disabled=True, help=f"PNG export unavailable: {exc}")
    else:
        btn_cols[0].download_button("Download PNG", data=png, file_name=filename, mime="image/png")
    with btn_cols[1].popover("Share link"):
        st.code(f"?{payload['query_string']}", language=None)

question = payload["question"]
if question is None:
    st.info("This topic has no questions configured.")
    st.stop()

with card(question["prompt"] or question["id"], actions=f"Baseline n={payload['baseline_n']} • Filtered n={payload['filtered_n']}"):
    if payload["overlay_hidden"]:
        st.markdown(f"<div class='overlay-note'>{payload['overlay_note']}</div>", unsafe_allow_html=True)
    st.altair_chart(chart, use_container_width=True)
    st.caption(
        "Gray bars show overall distribution (baseline). Colored overlay shows filtered distribution. "
        "Counts shown above colored bars only."
    )
