from __future__ import annotations

import logging
import math
import os
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from survey_api.schemas import FilterOptionsModel, QueryStringResponse, SessionStateModel
from survey_core.charts import export_chart_png
from survey_core.data import load_survey_data
from survey_core.filters import filter_options, filter_state_to_dict, normalize_filter_state
from survey_core.state import SessionState, initial_state
from survey_core.url_state import parse_url_state, to_query_string
from survey_core.views import compute_topic_view, topic_chart


app = FastAPI(title="ESCRS Survey Explorer API", version="0.1.0")
logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    o.strip()
    for o in (os.getenv("SURVEY_CORS_ORIGINS") or "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _session_from_model(model: SessionStateModel, data_ctx: dict) -> SessionState:
    config = data_ctx["config"]
    raw = model.model_dump()
    topic = raw.get("topic") or config.default_topic_id()
    return SessionState(topic_id=topic, filters=normalize_filter_state(raw.get("filters")))


def _search(request: Request) -> str:
    return request.url.query or ""


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/config")
def meta_config():
    try:
        data_ctx = load_survey_data()
        return _json(data_ctx["config"].model_dump())
    except Exception as exc:
        logger.exception("meta_config failed")
        return _error(exc)


@app.get("/meta/filters")
def meta_filters():
    try:
        data_ctx = load_survey_data()
        respondents = data_ctx["respondents"]
        out = [
            FilterOptionsModel(id=f.id, label=f.label, column=f.column, options=filter_options(respondents, f))
            for f in data_ctx["config"].filters
        ]
        return _json({"filters": [o.model_dump() for o in out]})
    except Exception as exc:
        logger.exception("meta_filters failed")
        return _error(exc)


@app.post("/view")
def view(state: SessionStateModel):
    try:
        data_ctx = load_survey_data()
        session = _session_from_model(state, data_ctx)
        return _json(compute_topic_view(session, data_ctx))
    except Exception as exc:
        logger.exception("view failed")
        return _error(exc)


@app.get("/view")
def view_from_query(request: Request):
    try:
        data_ctx = load_survey_data()
        session = initial_state(data_ctx["config"], _search(request))
        return _json(compute_topic_view(session, data_ctx))
    except Exception as exc:
        logger.exception("view_from_query failed")
        return _error(exc)


@app.post("/url-state/encode", response_model=QueryStringResponse)
def url_state_encode(state: SessionStateModel):
    raw = state.model_dump()
    qs = to_query_string(raw.get("topic") or "", normalize_filter_state(raw.get("filters")))
    return QueryStringResponse(query_string=qs)


@app.get("/url-state/decode")
def url_state_decode(search: str = Query(default="")):
    decoded = parse_url_state(search)
    return _json({"topic": decoded.topic, "filters": filter_state_to_dict(decoded.filters)})


@app.get("/export/{topic_id}.png")
def export_png(topic_id: str, request: Request, scale: Optional[float] = Query(default=2.0)):
    try:
        data_ctx = load_survey_data()
        session = initial_state(data_ctx["config"], _search(request))
        session = SessionState(topic_id=topic_id, filters=session.filters)
        payload = compute_topic_view(session, data_ctx, with_chart=False)
        filename, png = export_chart_png(topic_chart(payload), topic_id, scale=scale or 2.0)
    except Exception as exc:
        logger.exception("export_png failed")
        return _error(exc)
    return Response(content=png, media_type="image/png", headers={"Content-Disposition": f"attachment; filename={filename}"})
