"""
Topic graph session.

Owns the graph state of one conversation together with its debounce timer,
classifier, persistence and change listeners. Every mutation replaces the
state object in a single assignment and then notifies listeners, so no
partially merged graph is ever observable.
"""

import logging
import time
from typing import Any, Callable, Iterable, List, Optional, Union

from topicgraph.core.config import TopicGraphConfig
from topicgraph.graph.merge_engine import apply_analysis
from topicgraph.graph.models import AnalysisResult, GraphState, TranscriptEntry, count_words
from topicgraph.graph.view import GraphView, project_view
from topicgraph.oracle.client import TopicClassifierClient
from topicgraph.sse.event_emitter import GraphEventType
from topicgraph.storage import PersistenceAdapter, PersistenceListener, SaveResult, create_store, parse_snapshot
from topicgraph.text_buffer_manager.debounce_scheduler import DebounceTimer, FoldResult, fold_transcript
from topicgraph.transcript_feed import TranscriptFeed

logger = logging.getLogger(__name__)

StateListener = Callable[[GraphState, GraphEventType], None]


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class TopicGraphSession:
    """
    Incremental topic graph builder for one conversation.

    All methods must be called from the thread running the session's event
    loop; ``process_transcript`` arms a timer on that loop.
    """

    def __init__(
        self,
        config: Optional[TopicGraphConfig] = None,
        classifier: Optional[TopicClassifierClient] = None,
        persistence: Optional[PersistenceAdapter] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            config: Session configuration (defaults to TopicGraphConfig())
            classifier: Oracle client (defaults to one built from config.oracle)
            persistence: Snapshot adapter (defaults to the configured store)
            clock: Returns "now" in epoch milliseconds
        """
        self.config = config or TopicGraphConfig()
        self.classifier = classifier or TopicClassifierClient(self.config.oracle)
        self.persistence = persistence or PersistenceAdapter(
            create_store(self.config.storage), key=self.config.storage.key
        )
        self._clock = clock or _epoch_millis
        self._listeners: List[StateListener] = []
        self._timer = DebounceTimer(self.config.debounce.debounce_seconds, self.run_analysis)

        # Request generation, only consulted by the "latest_only" overlap policy
        self._generation = 0
        # Bumped by reset/import so earlier in-flight responses are dropped
        self._epoch = 0

        self._state = self.persistence.load()
        self._persistence_listener = PersistenceListener(self.persistence)
        self.subscribe(self._persistence_listener)

        logger.info(
            f"TopicGraphSession initialized with {len(self._state.nodes)} topics "
            f"(threshold {self.config.debounce.min_words_for_analysis} words, "
            f"debounce {self.config.debounce.debounce_seconds}s, overlap '{self.config.session.overlap_policy}')"
        )

    @property
    def state(self) -> GraphState:
        return self._state

    @property
    def timer(self) -> DebounceTimer:
        return self._timer

    def view(self) -> GraphView:
        return project_view(self._state)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-changed listener; returns an unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: GraphState, event: GraphEventType) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state, event)
            except Exception as e:
                logger.error(f"State listener failed on {event.value}: {e}", exc_info=True)

    def _set_analyzing(self, value: bool, event: GraphEventType) -> None:
        self._commit(self._state.model_copy(update={"is_analyzing": value}), event)

    def process_transcript(self, entries: Iterable[Union[TranscriptEntry, dict[str, Any]]]) -> FoldResult:
        """
        Fold the cumulative transcript list into the pending buffer and
        (re)arm the debounce timer once enough words are pending.
        """
        result = fold_transcript(self._state, entries, self.config.debounce.min_words_for_analysis)
        if result.new_entries == 0:
            return result

        self._commit(result.state, GraphEventType.TRANSCRIPT_FOLDED)
        if result.ready_for_processing:
            self._timer.arm()
        return result

    def attach_feed(self, feed: TranscriptFeed) -> Callable[[], None]:
        return feed.subscribe(self.process_transcript)

    async def run_analysis(self) -> Optional[AnalysisResult]:
        """
        Classify the pending text and merge the verdict.

        Returns the applied result, or None when nothing was merged. Oracle
        failures leave the pending text in place.
        """
        epoch = self._epoch
        self._generation += 1
        generation = self._generation

        analyzed_text = self._state.pending_text
        self._set_analyzing(True, GraphEventType.ANALYSIS_STARTED)
        try:
            return await self._classify_and_merge(analyzed_text, epoch, generation)
        finally:
            # Normal paths clear the flag themselves, this covers a raised exception
            if epoch == self._epoch and self._state.is_analyzing:
                self._set_analyzing(False, GraphEventType.ANALYSIS_FAILED)

    async def _classify_and_merge(self, analyzed_text: str, epoch: int, generation: int) -> Optional[AnalysisResult]:
        if not analyzed_text:
            self._set_analyzing(False, GraphEventType.GRAPH_UPDATED)
            return None

        result = await self.classifier.analyze(analyzed_text, list(self._state.nodes))

        if epoch != self._epoch:
            logger.info("Discarding oracle response issued before the graph was reset or replaced")
            return None

        if result is None:
            self._set_analyzing(False, GraphEventType.ANALYSIS_FAILED)
            self._maybe_retry()
            return None

        if self.config.session.overlap_policy == "latest_only" and generation != self._generation:
            logger.info(f"Discarding stale oracle response (generation {generation}, latest {self._generation})")
            self._set_analyzing(False, GraphEventType.GRAPH_UPDATED)
            return None

        self._commit(
            apply_analysis(self._state, result, analyzed_text, self._clock()),
            GraphEventType.GRAPH_UPDATED,
        )
        return result

    def _maybe_retry(self) -> None:
        if not self.config.session.retry_failed_analysis or self._timer.is_armed:
            return
        if count_words(self._state.pending_text) >= self.config.debounce.min_words_for_analysis:
            logger.info("Re-arming debounce timer after failed analysis")
            self._timer.arm()

    async def save(self) -> SaveResult:
        """Explicitly persist the current state"""
        return await self._persistence_listener.save_now(self._state)

    def reset(self) -> None:
        """Clear the graph and remove the stored snapshot"""
        self._timer.cancel()
        self._epoch += 1
        self._commit(GraphState(), GraphEventType.GRAPH_RESET)
        logger.info("Topic graph reset")

    def export_snapshot(self) -> dict[str, Any]:
        return self._state.to_snapshot()

    def import_snapshot(self, data: Any) -> GraphState:
        """
        Replace the whole state with ``data``.

        Raises:
            ValidationFailure: ``data`` is not an object; state is untouched
        """
        state = parse_snapshot(data)
        self._timer.cancel()
        self._epoch += 1
        self._commit(state, GraphEventType.GRAPH_IMPORTED)
        logger.info(f"Imported snapshot with {len(state.nodes)} topics and {len(state.edges)} transitions")
        return state

    async def drain(self) -> None:
        """Wait for fired analyses and scheduled saves to settle"""
        await self._timer.drain()
        await self._persistence_listener.flush()

    async def close(self) -> None:
        self._timer.cancel()
        await self.drain()
        self._persistence_listener.close()

    def get_statistics(self) -> dict[str, Any]:
        return {
            "topics": len(self._state.nodes),
            "transitions": len(self._state.edges),
            "pending_words": count_words(self._state.pending_text),
            "timer_armed": self._timer.is_armed,
            "analyses_running": self._timer.running_tasks,
            **self.classifier.get_statistics(),
            **self.persistence.statistics,
        }
