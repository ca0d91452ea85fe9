"""Push catalog changes to dashboards via Server-Sent Events."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Set

SUBSCRIBER_QUEUE_SIZE = 100
KEEPALIVE_SEC = 15.0


@dataclass
class SSEBroadcaster:
    """Fan out messages to every connected dashboard."""

    subscribers: Set[asyncio.Queue] = field(default_factory=set)
    queue_size: int = SUBSCRIBER_QUEUE_SIZE

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self.subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self.subscribers.discard(queue)

    def broadcast(self, message: Dict[str, Any]) -> None:
        """Must be called from the event loop thread."""
        for queue in list(self.subscribers):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                # Slow consumer: drop
                pass

    async def stream(
        self, queue: asyncio.Queue, keepalive: float = KEEPALIVE_SEC
    ) -> AsyncGenerator[str, None]:
        """Yield SSE frames, with a comment line when idle to keep proxies open."""
        while True:
            try:
                message = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"data: {json.dumps(message)}\n\n"


broadcaster = SSEBroadcaster()


def broadcast_event(kind: str, event_dict: Dict[str, Any]) -> None:
    broadcaster.broadcast({"kind": kind, "event": event_dict})
