# src/hookwatch/server/routes.py
"""
HTTP and WebSocket routes for the dashboard.

All handlers read the EventPipeline from ``request.app.state.pipeline``.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from .. import __version__
from ..exceptions import UnknownTimeRangeError
from ..models import ChartSnapshot, FilterOptions
from ..pipeline import EventPipeline
from .broadcaster import Broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


class TimeRangeRequest(BaseModel):
    range: str


def get_pipeline(request: Request) -> EventPipeline:
    return request.app.state.pipeline


def _switch_range(pipeline: EventPipeline, name: str) -> None:
    try:
        pipeline.set_time_range(name)
    except UnknownTimeRangeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/health")
async def health_check(pipeline: EventPipeline = Depends(get_pipeline)) -> dict[str, Any]:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy" if pipeline.coordinator.is_running else "degraded",
        "version": __version__,
        "events_in_memory": len(pipeline.store),
        "current_file": str(pipeline.coordinator.current_file or ""),
        "time_range": pipeline.aggregator.time_range,
    }


@router.get("/stats")
async def get_stats(pipeline: EventPipeline = Depends(get_pipeline)) -> dict[str, Any]:
    return pipeline.stats


@router.get("/events/recent")
async def get_recent_events(
    limit: int = Query(default=100, ge=1, le=10_000),
    pipeline: EventPipeline = Depends(get_pipeline),
) -> list[dict[str, Any]]:
    """Most recent events first."""
    return [record.to_dict() for record in pipeline.recent(limit)]


@router.get("/events/filter-options")
async def get_filter_options(pipeline: EventPipeline = Depends(get_pipeline)) -> FilterOptions:
    return pipeline.filter_options()


@router.get("/chart")
async def get_chart(
    range: str | None = Query(default=None, description="Switch to this range first"),
    pipeline: EventPipeline = Depends(get_pipeline),
) -> ChartSnapshot:
    if range is not None and range != pipeline.aggregator.time_range:
        _switch_range(pipeline, range)
    return pipeline.snapshot()


@router.post("/chart/range")
async def set_chart_range(
    body: TimeRangeRequest, pipeline: EventPipeline = Depends(get_pipeline)
) -> ChartSnapshot:
    _switch_range(pipeline, body.range)
    return pipeline.snapshot()


@router.post("/chart/clear")
async def clear_chart(pipeline: EventPipeline = Depends(get_pipeline)) -> dict[str, str]:
    pipeline.clear()
    return {"status": "cleared"}


@router.websocket("/stream")
async def stream_events(websocket: WebSocket) -> None:
    """
    Sends the recent events once, then every new event as it is ingested.

    Messages: ``{"type": "initial", "data": [...]}`` followed by
    ``{"type": "event", "data": {...}}``.
    """
    pipeline: EventPipeline = websocket.app.state.pipeline
    broadcaster: Broadcaster = websocket.app.state.broadcaster
    limit = websocket.app.state.config.server.recent_limit

    await websocket.accept()
    await websocket.send_json(
        {"type": "initial", "data": [record.to_dict() for record in pipeline.recent(limit)]}
    )
    broadcaster.register(websocket)
    try:
        while True:
            # clients do not send anything meaningful; this just detects disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await broadcaster.unregister(websocket)
