"""
Persistence Adapter
Best-effort snapshot storage for the topic graph: storage errors are logged
and reported as a SaveResult, never raised into the live pipeline.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Set

from pydantic import ValidationError

from topicgraph.errors import PersistenceFailure, ValidationFailure
from topicgraph.graph.models import GraphState, TopicEdge, TopicNode
from topicgraph.sse.event_emitter import GraphEventType
from topicgraph.storage.stores import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    """Outcome of a durable write or remove"""
    ok: bool
    error: Optional[str] = None
    saved_at: Optional[str] = None


def _coerce_nodes(raw: Any) -> List[TopicNode]:
    if not isinstance(raw, list):
        return []
    nodes: List[TopicNode] = []
    seen_ids: Set[str] = set()
    for item in raw:
        try:
            node = TopicNode.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Dropping malformed topic node: {e.error_count()} error(s)")
            continue
        if node.id in seen_ids:
            logger.warning(f"Dropping duplicate topic node id {node.id}")
            continue
        seen_ids.add(node.id)
        nodes.append(node)
    return nodes


def _coerce_edges(raw: Any, node_ids: Set[str]) -> List[TopicEdge]:
    if not isinstance(raw, list):
        return []
    edges: List[TopicEdge] = []
    pairs: Set[tuple] = set()
    for item in raw:
        try:
            edge = TopicEdge.model_validate(item)
        except ValidationError:
            logger.warning("Dropping malformed topic edge")
            continue
        pair = (edge.source, edge.target)
        if edge.source == edge.target or pair in pairs:
            continue
        if edge.source not in node_ids or edge.target not in node_ids:
            logger.warning(f"Dropping edge {edge.source} -> {edge.target} to unknown topic")
            continue
        pairs.add(pair)
        edges.append(edge)
    return edges


def coerce_snapshot(data: dict[str, Any]) -> GraphState:
    """
    Build a GraphState from a stored or imported snapshot.

    Every field falls back to its default on its own, so partial
    corruption keeps whatever is still usable.
    """
    nodes = _coerce_nodes(data.get("nodes"))
    node_ids = {node.id for node in nodes}
    edges = _coerce_edges(data.get("edges"), node_ids)

    current = data.get("currentTopicId")
    if not isinstance(current, str) or current not in node_ids:
        current = None

    index = data.get("lastProcessedIndex")
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        index = 0

    pending = data.get("pendingText")
    if not isinstance(pending, str):
        pending = ""

    return GraphState(
        nodes=nodes,
        edges=edges,
        current_topic_id=current,
        last_processed_index=index,
        pending_text=pending,
    )


def parse_snapshot(data: Any) -> GraphState:
    """
    Validate an import payload.

    Raises:
        ValidationFailure: if ``data`` is not an object
    """
    if not isinstance(data, dict):
        raise ValidationFailure(f"Snapshot must be an object, got {type(data).__name__}")
    return coerce_snapshot(data)


class PersistenceAdapter:
    """Loads, saves and clears the snapshot record of one session"""

    def __init__(self, store: Optional[KeyValueStore], key: str = "topic-graph"):
        """
        Args:
            store: Durable store, or None when storage is unavailable
            key: Record key of the snapshot
        """
        self.store = store
        self.key = key
        self.statistics = {
            "saves": 0,
            "failed_saves": 0,
            "last_save_time": None,
        }

    def load(self) -> GraphState:
        """Stored state, or an empty default when nothing usable is stored"""
        if self.store is None:
            return GraphState()
        try:
            data = self.store.get(self.key)
        except PersistenceFailure as e:
            logger.error(f"PersistenceFailure: {e}")
            return GraphState()
        if not isinstance(data, dict):
            if data is not None:
                logger.warning(f"Ignoring stored snapshot of type {type(data).__name__}")
            return GraphState()
        state = coerce_snapshot(data)
        logger.info(f"Graph state loaded: {len(state.nodes)} topics, {len(state.edges)} transitions")
        return state

    def save(self, state: GraphState) -> SaveResult:
        return self.save_snapshot(state.to_snapshot())

    def save_snapshot(self, snapshot: dict[str, Any]) -> SaveResult:
        if self.store is None:
            return SaveResult(ok=False, error="No durable storage configured")
        try:
            self.store.set(self.key, snapshot)
        except PersistenceFailure as e:
            self.statistics["failed_saves"] += 1
            logger.error(f"PersistenceFailure: {e}")
            return SaveResult(ok=False, error=str(e))
        saved_at = datetime.now().isoformat()
        self.statistics["saves"] += 1
        self.statistics["last_save_time"] = saved_at
        return SaveResult(ok=True, saved_at=saved_at)

    def clear(self) -> SaveResult:
        """Remove the durable record"""
        if self.store is None:
            return SaveResult(ok=True)
        try:
            self.store.remove(self.key)
        except PersistenceFailure as e:
            logger.error(f"PersistenceFailure: {e}")
            return SaveResult(ok=False, error=str(e))
        logger.info(f"Removed stored snapshot '{self.key}'")
        return SaveResult(ok=True)


class PersistenceListener:
    """
    Consumes state-changed notifications and writes snapshots off the event
    loop. A single worker keeps writes in notification order.
    """

    def __init__(self, adapter: PersistenceAdapter):
        self.adapter = adapter
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="topicgraph-persist")
        self._pending: Set[asyncio.Future] = set()

    def __call__(self, state: GraphState, event: GraphEventType) -> None:
        if event is GraphEventType.GRAPH_RESET:
            self._submit(self.adapter.clear)
        else:
            self._submit(self.adapter.save_snapshot, state.to_snapshot())

    def _submit(self, fn, *args) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: nothing to block, write inline
            fn(*args)
            return
        future = loop.run_in_executor(self._executor, fn, *args)
        self._pending.add(future)
        future.add_done_callback(self._write_done)

    def _write_done(self, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"Snapshot write crashed: {future.exception()!r}")

    async def save_now(self, state: GraphState) -> SaveResult:
        """Explicit save, queued behind writes already scheduled"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.adapter.save_snapshot, state.to_snapshot())

    async def flush(self) -> None:
        """Wait for every scheduled write to finish"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
