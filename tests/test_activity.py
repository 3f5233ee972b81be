"""Tests for the activity feed and system health reporting."""

import asyncio
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from starlette.websockets import WebSocketDisconnect

from result_portal.activity.tracker import ActivityTracker, format_uptime


class _FakeSocket:
    def __init__(self, fail_with: Exception | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.accepted = False
        self.fail_with = fail_with

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data: dict[str, Any]) -> None:
        if self.fail_with:
            raise self.fail_with
        self.sent.append(data)


class TestFormatUptime:
    """Tests for uptime rendering."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [(5, "5s"), (125, "2m 5s"), (3 * 3600 + 720, "3h 12m"), (2 * 86400 + 3600, "2d 1h")],
    )
    def test_format(self, seconds: float, expected: str) -> None:
        assert format_uptime(seconds) == expected


class TestActivityTracker:
    """Tests for ActivityTracker."""

    def setup_method(self) -> None:
        self.tracker = ActivityTracker(max_activities=3)

    def test_recent_newest_first(self) -> None:
        self.tracker.record("login", "first")
        self.tracker.record("upload", "second")
        assert [e.description for e in self.tracker.recent()] == ["second", "first"]

    def test_history_is_bounded(self) -> None:
        for i in range(5):
            self.tracker.record("system", f"event {i}")
        assert [e.description for e in self.tracker.recent()] == ["event 4", "event 3", "event 2"]

    def test_recent_limit(self) -> None:
        for i in range(3):
            self.tracker.record("system", f"event {i}")
        assert len(self.tracker.recent(limit=1)) == 1

    def test_event_to_dict(self) -> None:
        event = self.tracker.record("search", "lookup", status="warning", user="a@b.c")
        data = event.to_dict()
        assert data["id"].startswith("activity-")
        assert data["status"] == "warning"
        assert isinstance(data["timestamp"], str)

    def test_connect_sends_snapshot(self) -> None:
        socket = _FakeSocket()
        self.tracker.record("login", "before connect")

        asyncio.run(self.tracker.connect(socket))

        assert socket.accepted
        assert [m["type"] for m in socket.sent] == ["activities", "health"]
        assert socket.sent[0]["data"][0]["description"] == "before connect"
        assert self.tracker.active_connections == 1

    def test_log_activity_broadcasts(self) -> None:
        socket = _FakeSocket()
        asyncio.run(self.tracker.connect(socket))

        asyncio.run(self.tracker.log_activity("upload", "3 marksheets"))

        assert socket.sent[-1]["type"] == "activity"
        assert socket.sent[-1]["data"]["description"] == "3 marksheets"

    def test_broadcast_drops_dead_clients(self) -> None:
        alive = _FakeSocket()
        asyncio.run(self.tracker.connect(alive))
        dead = _FakeSocket()
        asyncio.run(self.tracker.connect(dead))
        dead.fail_with = WebSocketDisconnect()

        asyncio.run(self.tracker.broadcast({"type": "ping"}))

        assert self.tracker.active_connections == 1
        assert alive.sent[-1] == {"type": "ping"}

    @pytest.mark.parametrize(
        "used,status", [(50, "healthy"), (80, "warning"), (95, "error")]
    )
    def test_system_health(self, used: int, status: str) -> None:
        with patch("result_portal.activity.tracker.shutil.disk_usage") as mock_usage:
            mock_usage.return_value = MagicMock(total=100, used=used, free=100 - used)
            health = self.tracker.system_health()
        assert health["status"] == status
        assert health["diskUsage"] == used
        assert health["activeConnections"] == 0
        assert set(health) == {"status", "uptime", "diskUsage", "activeConnections", "lastUpdate"}
