from enum import Enum
import asyncio
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class GraphEventType(Enum):
    TRANSCRIPT_FOLDED = "transcript_folded"
    ANALYSIS_STARTED = "analysis_started"
    ANALYSIS_FAILED = "analysis_failed"
    GRAPH_UPDATED = "graph_updated"
    GRAPH_IMPORTED = "graph_imported"
    GRAPH_RESET = "graph_reset"


class SSEEventEmitter:
    def __init__(self, queue: asyncio.Queue[dict[str, Any]], max_pending: Optional[int] = 1000):
        self.queue = queue
        self.max_pending = max_pending

    async def emit(self, event_type: GraphEventType, data: dict[str, Any]) -> None:
        await self.queue.put({"event": event_type.value, "data": data})

    def emit_nowait(self, event_type: GraphEventType, data: dict[str, Any]) -> None:
        """Enqueue from synchronous code; oldest events are dropped when nobody is reading"""
        if self.max_pending is not None and self.queue.qsize() >= self.max_pending:
            self.queue.get_nowait()
            logger.debug("SSE queue full, dropped oldest event")
        self.queue.put_nowait({"event": event_type.value, "data": data})
