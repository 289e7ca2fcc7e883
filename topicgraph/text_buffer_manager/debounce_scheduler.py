"""
Debounce Scheduler
Folds finalized transcript entries into the pending buffer and owns the
single trailing-edge timer that triggers an analysis.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Set, Union

from topicgraph.graph.models import GraphState, TranscriptEntry, count_words

logger = logging.getLogger(__name__)


@dataclass
class FoldResult:
    """Result from folding a transcript list into the pending buffer"""
    state: GraphState
    new_entries: int = 0
    word_count: int = 0
    ready_for_processing: bool = False


def _as_entry(entry: Union[TranscriptEntry, dict[str, Any]]) -> TranscriptEntry:
    if isinstance(entry, TranscriptEntry):
        return entry
    return TranscriptEntry.model_validate(entry)


def fold_transcript(
    state: GraphState,
    entries: Iterable[Union[TranscriptEntry, dict[str, Any]]],
    min_words: int,
) -> FoldResult:
    """
    Append final entries beyond ``last_processed_index`` to the pending text.

    ``entries`` must be the cumulative list from the start of the feed; the
    index is a count of final entries, not a cursor into ``entries``.
    A list with fewer final entries than the index is treated as a restarted
    feed and folded from the beginning.
    """
    final_entries = [entry for entry in map(_as_entry, entries) if entry.is_final]

    start = state.last_processed_index
    if len(final_entries) < start:
        logger.warning(
            f"Transcript shrank to {len(final_entries)} final entries "
            f"(index was {start}); treating it as a restarted feed"
        )
        start = 0

    new_entries = final_entries[start:]
    if not new_entries:
        logger.debug("No new final entries to fold")
        return FoldResult(state=state, word_count=count_words(state.pending_text))

    new_text = " ".join(entry.text for entry in new_entries)
    combined = f"{state.pending_text} {new_text}".strip()
    word_count = count_words(combined)

    updated = state.model_copy(update={
        "pending_text": combined,
        "last_processed_index": len(final_entries),
    })
    logger.debug(f"Folded {len(new_entries)} final entries, pending now {word_count} words")
    return FoldResult(
        state=updated,
        new_entries=len(new_entries),
        word_count=word_count,
        ready_for_processing=word_count >= min_words,
    )


class DebounceTimer:
    """
    One cancellable trailing-edge timer per session.

    Re-arming cancels the outstanding timer. Once it fires, the callback runs
    as a detached task that later ``cancel()`` calls do not touch.
    """

    def __init__(self, delay_seconds: float, callback: Callable[[], Awaitable[None]]):
        self.delay_seconds = delay_seconds
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    @property
    def running_tasks(self) -> int:
        return len(self._running)

    def arm(self) -> None:
        """(Re)start the countdown; must be called from the event loop thread"""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._fire)
        logger.debug(f"Debounce timer armed for {self.delay_seconds:.3f}s")

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.get_running_loop().create_task(self._callback())
        self._running.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Debounced analysis crashed: {task.exception()!r}")

    async def drain(self) -> None:
        """Wait until no fired callback is still running"""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
