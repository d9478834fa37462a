"""
Question relay server.

Polls the spreadsheet for new submissions and relays the pending and
approved lists to browser clients over WebSockets. Moderators approve,
decline or project questions by sending messages back on the same socket.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from aiohttp import WSMsgType, web

from ..core.events import Event, EventBus, EventType
from .errors import SheetError
from .hub import ConnectionHub, decode_message
from .activity import RelayActivity
from .questions import QuestionStore
from .sheet import SheetClient

logger = logging.getLogger(__name__)

REFRESH_DATA = "refresh_data"
PROJECT_LIVE = "project_live"


class RelayServer:
    """
    HTTP and WebSocket server for the question relay.

    Args:
        sheet: Spreadsheet reader (polling is disabled when None)
        store: Question list (a fresh one when None)
        poll_interval: Seconds between spreadsheet reads
        static_dir: Directory served at ``/`` when it exists
        host: Interface to bind
        port: TCP port to listen on
        event_bus: Bus for relay events (a private one when None)
    """

    def __init__(
        self,
        sheet: Optional[SheetClient] = None,
        store: Optional[QuestionStore] = None,
        poll_interval: float = 5.0,
        static_dir: Optional[Path] = None,
        host: str = "0.0.0.0",
        port: int = 3000,
        event_bus: Optional[EventBus] = None,
    ):
        self.sheet = sheet
        self.store = store or QuestionStore()
        self.hub = ConnectionHub()
        self.poll_interval = poll_interval
        self.static_dir = static_dir
        self.host = host
        self.port = port
        self.event_bus = event_bus or EventBus()
        self.activity = RelayActivity(self.event_bus)

        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "admin_approve": self.approve,
            "admin_decline": self.decline,
            "admin_project": self.project,
        }

        self.app = web.Application()
        self._setup_routes()
        self._runner: Optional[web.AppRunner] = None
        self._poll_task: Optional[asyncio.Task] = None

    def _setup_routes(self) -> None:
        """Setup HTTP routes."""
        self.app.router.add_get("/ws", self._handle_ws)
        self.app.router.add_get("/api/questions", self._handle_questions)
        self.app.router.add_get("/api/status", self._handle_status)

        if self.static_dir and self.static_dir.is_dir():
            self.app.router.add_get("/", self._handle_index)
            self.app.router.add_static("/", self.static_dir)
            logger.info(f"Serving static files from {self.static_dir}")

    # HTTP handlers

    async def _handle_index(self, request: web.Request) -> web.StreamResponse:
        index = self.static_dir / "index.html"
        if index.exists():
            return web.FileResponse(index)
        return web.Response(text="Not found", status=404)

    async def _handle_questions(self, request: web.Request) -> web.Response:
        """Return the current lists."""
        return web.json_response(self.store.lists())

    async def _handle_status(self, request: web.Request) -> web.Response:
        """Return the activity tally."""
        return web.json_response(self.activity.snapshot())

    async def _handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        await self.hub.connect(ws)
        self._emit(EventType.CLIENT_CONNECTED, {"clients": len(self.hub)})
        await self.broadcast_lists()

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self.handle_message(msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning(f"WebSocket error: {ws.exception()}")
        finally:
            await self.hub.disconnect(ws)
            self._emit(EventType.CLIENT_DISCONNECTED, {"clients": len(self.hub)})

        return ws

    # Moderation

    async def handle_message(self, raw: str) -> None:
        """Dispatch one client message; malformed ones are logged and dropped."""
        try:
            event, data = decode_message(raw)
        except ValueError as e:
            logger.warning(f"Ignoring malformed message: {e}")
            return

        handler = self._handlers.get(event)
        if handler is None:
            logger.warning(f"Ignoring unknown event: {event}")
            return
        await handler(data)

    async def approve(self, question_id: Any) -> None:
        if self.store.approve(question_id):
            self._emit(EventType.QUESTION_STATUS, {"id": question_id, "status": "Approved"})
            await self.broadcast_lists()

    async def decline(self, question_id: Any) -> None:
        if self.store.decline(question_id):
            self._emit(EventType.QUESTION_STATUS, {"id": question_id, "status": "Rejected"})
            await self.broadcast_lists()

    async def project(self, question_id: Any) -> None:
        """Announce a question live, then mark it projected."""
        question = self.store.get(question_id)
        if question is None:
            return

        logger.info(f"Projecting: {question.question}")
        await self.hub.broadcast(PROJECT_LIVE, question.to_dict())
        self._emit(EventType.QUESTION_PROJECTED, question.to_dict())

        self.store.project(question_id)
        await self.broadcast_lists()

    async def broadcast_lists(self) -> int:
        return await self.hub.broadcast(REFRESH_DATA, self.store.lists())

    # Polling

    async def poll_once(self) -> int:
        """
        Read the sheet once and publish new rows.

        Returns:
            Number of new questions

        Raises:
            SheetError: If the sheet could not be read
        """
        if self.sheet is None:
            return 0

        rows = await self.sheet.fetch_rows()
        added = self.store.ingest(rows)
        if added:
            logger.info(f"Found {len(added)} new questions.")
            self._emit(EventType.QUESTIONS_ADDED, {"count": len(added)})
            await self.broadcast_lists()
        return len(added)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.poll_once()
            except SheetError as e:
                logger.error(f"Sheet Error: {e}")
                self._emit(EventType.SHEET_ERROR, {"error": str(e)})
            except Exception as e:
                logger.exception(f"Sheet Error: {e}")

    # Lifecycle

    async def start(self) -> None:
        """Start the web server and the poll task."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Server running on port {self.port}")

        if self.sheet is not None:
            self._poll_task = asyncio.create_task(self._poll_loop())
        else:
            logger.warning("No spreadsheet configured, polling disabled")

    async def stop(self) -> None:
        """Stop polling and the web server."""
        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        await self.hub.close_all()
        if self.sheet:
            await self.sheet.close()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Relay server stopped")
        self._emit(EventType.SHUTDOWN, {})

    def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        self.event_bus.emit(Event(event_type, data=data, source="relay"))
