"""
Live transaction broadcasting to connected subscribers.

The broadcaster is registered as an ingestion listener. ``push`` runs inside
the ingestion call, so it only serializes once and hands the text to each
connection; the WebSocket adapter delivers it from its own task.
"""
import asyncio
import contextlib
from typing import Any, Callable, List, Protocol, Set

import structlog
from fastapi import WebSocket
from starlette.websockets import WebSocketState

from ..core.models import Transaction
from ..monitoring.metrics import metrics

logger = structlog.get_logger(__name__)


class Connection(Protocol):
    """Transport-level subscriber connection."""

    def is_open(self) -> bool: ...

    def send(self, message: str) -> None: ...

    def on_close(self, callback: Callable[[], Any]) -> None: ...


class LiveBroadcaster:
    """
    Maintains the set of live subscribers and pushes every transaction to them.

    Delivery is best effort: connections observed closed at send time are
    skipped, nothing is retried or acknowledged, and there is no backpressure.
    """

    def __init__(self) -> None:
        self._connections: Set[Connection] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._connections)

    def attach(self, connection: Connection) -> None:
        """
        Add a subscriber and remove it again when it closes.

        Args:
            connection: Open subscriber connection
        """
        self._connections.add(connection)
        connection.on_close(lambda: self.detach(connection))
        metrics.set_live_subscribers(len(self._connections))
        logger.info("live_subscriber_attached", subscribers=len(self._connections))

    def detach(self, connection: Connection) -> None:
        if connection in self._connections:
            self._connections.discard(connection)
            metrics.set_live_subscribers(len(self._connections))
            logger.info("live_subscriber_detached", subscribers=len(self._connections))

    def push(self, transaction: Transaction) -> int:
        """
        Send a transaction to every open subscriber.

        Args:
            transaction: Transaction to broadcast

        Returns:
            int: Number of connections the message was handed to
        """
        message = transaction.to_wire_json()
        delivered = 0

        for connection in list(self._connections):
            if not connection.is_open():
                continue
            try:
                connection.send(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "live_push_failed",
                    tx_id=transaction.tx_id,
                    error=str(e),
                )

        metrics.record_broadcast(delivered)
        return delivered


class WebSocketConnection:
    """
    Adapts a FastAPI WebSocket to the ``Connection`` protocol.

    Messages are queued without bound and written by a sender task, so
    ``send`` never blocks the ingestion call.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._close_callbacks: List[Callable[[], Any]] = []
        self._closed = False

    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def send(self, message: str) -> None:
        self._outbox.put_nowait(message)

    def on_close(self, callback: Callable[[], Any]) -> None:
        self._close_callbacks.append(callback)

    async def _drain(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self.websocket.send_text(message)
            except (RuntimeError, OSError) as e:
                logger.info("live_subscriber_send_failed", error=str(e))
                self._mark_closed()
                return

    async def run(self) -> None:
        """Deliver queued messages until the client disconnects."""
        sender = asyncio.create_task(self._drain())
        try:
            while True:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender
            self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        for callback in self._close_callbacks:
            callback()
