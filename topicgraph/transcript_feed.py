"""
In-process transcript feed.

Holds the growing list of recognizer entries and hands the full cumulative
list to subscribers after every change.
"""

import logging
from datetime import datetime
from typing import Callable, List

from topicgraph.graph.models import TranscriptEntry

logger = logging.getLogger(__name__)

FeedListener = Callable[[List[TranscriptEntry]], None]


class TranscriptFeed:
    def __init__(self) -> None:
        self._entries: List[TranscriptEntry] = []
        self._listeners: List[FeedListener] = []

    @property
    def entries(self) -> List[TranscriptEntry]:
        return list(self._entries)

    def subscribe(self, listener: FeedListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_entry(self, text: str, is_final: bool) -> TranscriptEntry:
        """
        Add a recognizer result. A trailing interim entry is replaced rather
        than kept, so at most the last entry is ever non-final.
        """
        entry = TranscriptEntry(text=text, is_final=is_final, timestamp=datetime.now().isoformat())
        if self._entries and not self._entries[-1].is_final:
            self._entries[-1] = entry
        else:
            self._entries.append(entry)
        self._notify()
        return entry

    def clear(self) -> None:
        self._entries = []
        self._notify()

    def _notify(self) -> None:
        snapshot = self.entries
        for listener in list(self._listeners):
            listener(snapshot)
