"""Metrics endpoint."""

from typing import Annotated, Literal

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from wire_recon.api.dependencies import DbSession
from wire_recon.metrics import MetricsCollector

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def get_metrics(
    db: DbSession,
    output_format: Annotated[
        Literal["prometheus", "json"], Query(alias="format")
    ] = "prometheus",
) -> Response:
    """Export reconciliation metrics in Prometheus text or JSON."""
    metrics = await MetricsCollector(db).collect_all()
    if output_format == "json":
        return JSONResponse(metrics.to_dict())
    return PlainTextResponse(metrics.to_prometheus())
