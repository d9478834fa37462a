"""
Tests for the relay server: WebSocket moderation flow, REST lists and polling.

Run tests:
    pytest tests/test_relay_server.py -v
"""

import asyncio
import logging

import pytest
from aiohttp.test_utils import TestClient, TestServer

from gridscan.core.events import EventBus, EventType
from gridscan.relay.errors import SheetError
from gridscan.relay.questions import QuestionStatus, QuestionStore
from gridscan.relay.server import RelayServer

TIMEOUT = 2.0


class FakeSheet:
    """Returns queued row lists, or raises when given an exception."""

    def __init__(self, *results):
        self.results = list(results)
        self.closed = False

    async def fetch_rows(self):
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result

    async def close(self):
        self.closed = True


def rows(count):
    return [{"Name": f"Guest {i}", "Question": f"Question {i}?"} for i in range(count)]


def seeded_store(count=3):
    store = QuestionStore()
    store.ingest(rows(count))
    return store


async def receive(ws):
    return await ws.receive_json(timeout=TIMEOUT)


class TestWebSocketFlow:

    @pytest.mark.asyncio
    async def test_websocket_connect_receives_lists(self):
        server = RelayServer(store=seeded_store())
        async with TestClient(TestServer(server.app)) as client:
            ws = await client.ws_connect("/ws")
            message = await receive(ws)
            await ws.close()

        assert message["event"] == "refresh_data"
        assert [q["id"] for q in message["data"]["pending"]] == [0, 1, 2]
        assert message["data"]["approved"] == []

    @pytest.mark.asyncio
    async def test_websocket_new_client_refreshes_everyone(self):
        server = RelayServer(store=seeded_store())
        async with TestClient(TestServer(server.app)) as client:
            first = await client.ws_connect("/ws")
            await receive(first)
            second = await client.ws_connect("/ws")
            await receive(second)
            message = await receive(first)
            await first.close()
            await second.close()

        assert message["event"] == "refresh_data"

    @pytest.mark.asyncio
    async def test_websocket_approve_and_decline(self):
        server = RelayServer(store=seeded_store())
        async with TestClient(TestServer(server.app)) as client:
            ws = await client.ws_connect("/ws")
            await receive(ws)

            await ws.send_json({"event": "admin_approve", "data": 1})
            approved = await receive(ws)

            await ws.send_json({"event": "admin_decline", "data": 0})
            declined = await receive(ws)
            await ws.close()

        assert [q["id"] for q in approved["data"]["approved"]] == [1]
        assert [q["id"] for q in declined["data"]["pending"]] == [2]
        assert server.store.get(0).status == QuestionStatus.REJECTED

    @pytest.mark.asyncio
    async def test_websocket_project_announces_then_refreshes(self):
        server = RelayServer(store=seeded_store())
        async with TestClient(TestServer(server.app)) as client:
            ws = await client.ws_connect("/ws")
            await receive(ws)
            await ws.send_json({"event": "admin_approve", "data": 2})
            await receive(ws)

            await ws.send_json({"event": "admin_project", "data": 2})
            live = await receive(ws)
            refresh = await receive(ws)
            await ws.close()

        assert live["event"] == "project_live"
        assert live["data"]["id"] == 2
        assert live["data"]["question"] == "Question 2?"
        assert live["data"]["status"] == "Approved"
        assert refresh["event"] == "refresh_data"
        assert refresh["data"]["approved"] == []
        assert server.store.get(2).status == QuestionStatus.PROJECTED

    @pytest.mark.asyncio
    async def test_websocket_ignores_bad_messages(self):
        server = RelayServer(store=seeded_store())
        async with TestClient(TestServer(server.app)) as client:
            ws = await client.ws_connect("/ws")
            await receive(ws)

            await ws.send_str("not json")
            await ws.send_json(["admin_approve", 1])
            await ws.send_json({"event": "admin_reboot", "data": 1})
            await ws.send_json({"event": "admin_approve", "data": 42})
            await ws.send_json({"event": "admin_approve", "data": 0})
            message = await receive(ws)
            await ws.close()

        # Only the last, valid message produced a broadcast
        assert [q["id"] for q in message["data"]["approved"]] == [0]


class TestHttp:

    @pytest.mark.asyncio
    async def test_questions_endpoint(self):
        store = seeded_store()
        store.approve(1)
        server = RelayServer(store=store)
        async with TestClient(TestServer(server.app)) as client:
            response = await client.get("/api/questions")
            data = await response.json()

        assert response.status == 200
        assert [q["id"] for q in data["pending"]] == [0, 2]
        assert [q["id"] for q in data["approved"]] == [1]

    @pytest.mark.asyncio
    async def test_status_endpoint_reflects_moderation(self):
        server = RelayServer(store=seeded_store())
        async with TestClient(TestServer(server.app)) as client:
            ws = await client.ws_connect("/ws")
            await receive(ws)
            await ws.send_json({"event": "admin_approve", "data": 0})
            await receive(ws)
            await ws.send_json({"event": "admin_project", "data": 0})
            await receive(ws)
            await receive(ws)

            response = await client.get("/api/status")
            status = await response.json()
            await ws.close()

        assert status["approved"] == 1
        assert status["projected"] == 1
        assert status["clients"] == 1
        assert status["peak_clients"] == 1

    @pytest.mark.asyncio
    async def test_static_files(self, tmp_path):
        (tmp_path / "index.html").write_text("<h1>Questions</h1>")
        (tmp_path / "admin.js").write_text("console.log('admin')")
        server = RelayServer(static_dir=tmp_path)
        async with TestClient(TestServer(server.app)) as client:
            index = await client.get("/")
            script = await client.get("/admin.js")
            index_text = await index.text()

        assert index.status == 200
        assert "Questions" in index_text
        assert script.status == 200

    @pytest.mark.asyncio
    async def test_missing_static_dir_is_skipped(self, tmp_path):
        server = RelayServer(static_dir=tmp_path / "missing")
        async with TestClient(TestServer(server.app)) as client:
            response = await client.get("/")
        assert response.status == 404


class TestPolling:

    @pytest.mark.asyncio
    async def test_poll_once_adds_new_rows(self, caplog):
        bus = EventBus()
        added_events = []
        bus.subscribe(EventType.QUESTIONS_ADDED, added_events.append)
        server = RelayServer(sheet=FakeSheet(rows(2), rows(2), rows(3)), event_bus=bus)

        with caplog.at_level(logging.INFO):
            assert await server.poll_once() == 2
        assert "Found 2 new questions." in caplog.text

        assert await server.poll_once() == 0
        assert await server.poll_once() == 1
        assert [e.data["count"] for e in added_events] == [2, 1]
        assert len(server.store) == 3

    @pytest.mark.asyncio
    async def test_poll_once_broadcasts_to_clients(self):
        server = RelayServer(sheet=FakeSheet(rows(1)))
        async with TestClient(TestServer(server.app)) as client:
            ws = await client.ws_connect("/ws")
            empty = await receive(ws)
            await server.poll_once()
            refreshed = await receive(ws)
            await ws.close()

        assert empty["data"]["pending"] == []
        assert [q["name"] for q in refreshed["data"]["pending"]] == ["Guest 0"]

    @pytest.mark.asyncio
    async def test_poll_once_without_sheet(self):
        assert await RelayServer().poll_once() == 0

    @pytest.mark.asyncio
    async def test_poll_loop_survives_sheet_errors(self, caplog):
        sheet = FakeSheet(SheetError("quota exceeded"), rows(2))
        server = RelayServer(sheet=sheet, poll_interval=0.01)

        with caplog.at_level(logging.ERROR):
            task = asyncio.create_task(server._poll_loop())
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert "Sheet Error: quota exceeded" in caplog.text
        assert len(server.store) == 2
        assert server.activity.sheet_errors == 1
        assert server.activity.questions_added == 2

    @pytest.mark.asyncio
    async def test_start_and_stop(self, unused_tcp_port, caplog):
        sheet = FakeSheet(rows(0))
        server = RelayServer(sheet=sheet, host="127.0.0.1", port=unused_tcp_port, poll_interval=60)
        await server.start()
        with caplog.at_level(logging.INFO):
            await server.stop()
        assert sheet.closed
        assert "Relay activity: 0 questions in" in caplog.text
