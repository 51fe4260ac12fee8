"""
FastAPI app for the year-in-review system.

Endpoints:
- GET  /health
- POST /review        (multipart CSV upload -> layout JSON)
- POST /review/chart  (multipart CSV upload -> PNG or SVG)

Uploads are processed in memory and never stored. The upload handlers are
plain functions so FastAPI runs parsing and rendering in its threadpool.
"""

from __future__ import annotations

from io import BytesIO
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# --- Make src/ importable ----------------------------------------------------

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from year_in_review.config import get_config
from year_in_review.data_io import INTAKE_HINT, EntryParseError, read_upload
from year_in_review.render import render_review
from year_in_review.review import YearInReview, build_review, review_to_dict
from year_in_review.schema import LayoutMode

logger = logging.getLogger(__name__)

MEDIA_TYPES = {"png": "image/png", "svg": "image/svg+xml"}

app = FastAPI(title="Year in Review API")


# --- Response schemas --------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    hint: str


class ReviewResponse(BaseModel):
    summary: Dict[str, Any]
    months: List[Dict[str, Any]]
    layout: Dict[str, Any]
    categories: List[Dict[str, Any]]


# --- Helpers -----------------------------------------------------------------


def review_from_upload(
    data: bytes,
    mode: Optional[LayoutMode],
    width: Optional[int],
    height: Optional[int],
) -> YearInReview:
    """
    Parse an uploaded export and build its review.

    Malformed files are rejected as a whole with HTTP 422.
    """
    try:
        entries = read_upload(data)
    except EntryParseError as e:
        logger.warning("Rejected upload: %s", e)
        raise HTTPException(status_code=422, detail=f"{e} {INTAKE_HINT}")

    return build_review(entries, get_config(), width=width, height=height, mode=mode)


# --- Endpoints ---------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", hint=INTAKE_HINT)


@app.post("/review", response_model=ReviewResponse)
def review(
    file: UploadFile = File(...),
    mode: Optional[LayoutMode] = Query(None),
    width: Optional[int] = Query(None, gt=0),
    height: Optional[int] = Query(None, gt=0),
) -> ReviewResponse:
    """
    Summary, stacks, band polygons and label anchors for an uploaded export.
    """
    try:
        data = file.file.read()
    finally:
        file.file.close()

    result = review_from_upload(data, mode, width, height)
    return ReviewResponse(**review_to_dict(result))


@app.post("/review/chart")
def review_chart(
    file: UploadFile = File(...),
    fmt: str = Query("png", alias="format", pattern="^(png|svg)$"),
    mode: Optional[LayoutMode] = Query(None),
    width: Optional[int] = Query(None, gt=0),
    height: Optional[int] = Query(None, gt=0),
    highlight: Optional[str] = Query(None),
) -> Response:
    """
    Rendered chart for an uploaded export.
    """
    try:
        data = file.file.read()
    finally:
        file.file.close()

    result = review_from_upload(data, mode, width, height)

    buffer = BytesIO()
    render_review(result, buffer, fmt=fmt, highlight=highlight)
    return Response(content=buffer.getvalue(), media_type=MEDIA_TYPES[fmt])


# Convenience for local dev:
# uvicorn app.api:app --reload
if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=get_config().log_level)
    uvicorn.run("app.api:app", host="0.0.0.0", port=8000, reload=True)
