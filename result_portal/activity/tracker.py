"""Live activity feed and system health for the admin dashboard.

Keeps a bounded history of portal events and pushes new ones to every
connected websocket client.
"""

import shutil
import time
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from result_portal.utils.logger import get_logger

logger = get_logger(__name__)

ActivityType = Literal[
    "login", "upload", "search", "download", "admin_action", "system", "error"
]
ActivityStatus = Literal["success", "warning", "error"]


@dataclass
class ActivityEvent:
    """A single entry in the activity feed."""

    type: ActivityType
    description: str
    status: ActivityStatus = "success"
    user: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: f"activity-{uuid.uuid4().hex[:12]}")
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


def format_uptime(seconds: float) -> str:
    """Render a duration as its two most significant units, e.g. ``3h 12m``."""
    seconds = int(seconds)
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if days:
        return f"{days}d {hours % 24}h"
    if hours:
        return f"{hours}h {minutes % 60}m"
    if minutes:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


class ActivityTracker:
    """Bounded activity history with websocket fan-out.

    Args:
        max_activities: Number of most recent events kept in memory.
        disk_path: Filesystem location whose usage is reported as health.
    """

    def __init__(self, max_activities: int = 1000, disk_path: str = ".") -> None:
        self._activities: deque[ActivityEvent] = deque(maxlen=max_activities)
        self._clients: set[WebSocket] = set()
        self._started = time.monotonic()
        self.disk_path = disk_path

    @property
    def active_connections(self) -> int:
        return len(self._clients)

    def record(self, event_type: ActivityType, description: str, **kwargs: Any) -> ActivityEvent:
        event = ActivityEvent(type=event_type, description=description, **kwargs)
        self._activities.appendleft(event)
        logger.debug("Activity %s: %s", event_type, description)
        return event

    async def log_activity(
        self, event_type: ActivityType, description: str, **kwargs: Any
    ) -> ActivityEvent:
        """Record an event and push it to connected clients."""
        event = self.record(event_type, description, **kwargs)
        await self.broadcast({"type": "activity", "data": event.to_dict()})
        return event

    def recent(self, limit: int = 50) -> list[ActivityEvent]:
        return list(self._activities)[:limit]

    def system_health(self) -> dict[str, Any]:
        usage = shutil.disk_usage(self.disk_path)
        disk_percent = round(usage.used / usage.total * 100) if usage.total else 0
        if disk_percent > 90:
            status = "error"
        elif disk_percent > 70:
            status = "warning"
        else:
            status = "healthy"
        return {
            "status": status,
            "uptime": format_uptime(time.monotonic() - self._started),
            "diskUsage": disk_percent,
            "activeConnections": self.active_connections,
            "lastUpdate": datetime.now(timezone.utc).isoformat(),
        }

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a client and send it the current feed and health."""
        await websocket.accept()
        self._clients.add(websocket)
        await websocket.send_json(
            {"type": "activities", "data": [e.to_dict() for e in self.recent(50)]}
        )
        await websocket.send_json({"type": "health", "data": self.system_health()})

    def disconnect(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)

    async def broadcast(self, message: dict[str, Any]) -> None:
        for client in list(self._clients):
            try:
                await client.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                logger.debug("Dropping closed websocket client")
                self.disconnect(client)
