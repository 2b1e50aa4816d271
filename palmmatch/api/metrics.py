"""Prometheus scrape endpoint."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from palmmatch.core.metrics import METRICS

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

router = APIRouter(tags=["ops"])


@router.get("/metrics", include_in_schema=False)
def scrape():
    return PlainTextResponse(METRICS.export_prometheus(), media_type=PROMETHEUS_CONTENT_TYPE)
