"""
Text Buffer Manager Module
Debounced batching of finalized transcript text
"""

from topicgraph.text_buffer_manager.debounce_scheduler import (
    DebounceTimer,
    FoldResult,
    fold_transcript,
)

__all__ = ["DebounceTimer", "FoldResult", "fold_transcript"]
