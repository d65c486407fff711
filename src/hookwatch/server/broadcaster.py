# src/hookwatch/server/broadcaster.py
"""
Fan-out of newly ingested events to connected WebSocket clients.

``publish`` is called synchronously from the ingestion callback, so it only
enqueues. Each client has its own queue and writer task, which keeps per-client
message order equal to ingestion order and isolates slow or dead clients. A
client whose queue fills up is dropped and its socket closed with code 1013
(try again later), so it can reconnect and resync from the initial snapshot.
"""

import asyncio
import logging
from typing import Any

from fastapi import WebSocket, status

from ..models import EventRecord

logger = logging.getLogger(__name__)

# Messages buffered per client before it is considered too slow and dropped
MAX_PENDING_MESSAGES = 1000


class _Client:
    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=MAX_PENDING_MESSAGES)
        self.task: asyncio.Task | None = None


class Broadcaster:
    """Tracks connected clients and streams ``{"type": "event"}`` messages to them."""

    def __init__(self) -> None:
        self._clients: dict[WebSocket, _Client] = {}
        self._closing: set[asyncio.Task] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    def register(self, websocket: WebSocket) -> None:
        """Start streaming to an already accepted WebSocket."""
        client = _Client(websocket)
        client.task = asyncio.create_task(self._writer(client))
        self._clients[websocket] = client
        logger.info(f"WebSocket client connected ({len(self._clients)} total)")

    async def unregister(self, websocket: WebSocket) -> None:
        client = self._clients.pop(websocket, None)
        if client is None:
            return
        if client.task is not None:
            client.task.cancel()
            try:
                await client.task
            except asyncio.CancelledError:
                pass
        logger.info(f"WebSocket client disconnected ({len(self._clients)} remaining)")

    def publish(self, records: list[EventRecord]) -> None:
        """Queue one message per record for every client."""
        for websocket, client in list(self._clients.items()):
            for record in records:
                try:
                    client.queue.put_nowait({"type": "event", "data": record.to_dict()})
                except asyncio.QueueFull:
                    logger.warning("WebSocket client is not keeping up, disconnecting it")
                    self._drop(websocket)
                    break

    def _drop(self, websocket: WebSocket) -> None:
        client = self._clients.pop(websocket, None)
        if client is None:
            return
        if client.task is not None:
            client.task.cancel()
        task = asyncio.create_task(self._close_socket(websocket))
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close_socket(self, websocket: WebSocket) -> None:
        try:
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        except Exception as e:
            logger.debug(f"Could not close dropped WebSocket client: {e}")

    async def _writer(self, client: _Client) -> None:
        while True:
            message = await client.queue.get()
            try:
                await client.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send to WebSocket client: {e}")
                self._clients.pop(client.websocket, None)
                return

    async def close(self) -> None:
        for websocket in list(self._clients):
            await self.unregister(websocket)
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)
