"""
Pydantic models for the topic graph and the oracle exchange.

Python attributes are snake_case; the wire and snapshot format keeps the
camelCase keys (``wordCount``, ``currentTopicId``...) through aliases, so
``model_dump(by_alias=True)`` produces what clients and stored snapshots use.
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def count_words(text: str) -> int:
    """Number of non-empty whitespace-delimited tokens"""
    return len(text.split())


class CamelModel(BaseModel):
    # NaN and infinity cannot be written back out as JSON
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


class TranscriptEntry(CamelModel):
    """One entry of the transcript feed"""
    text: str = Field(description="Transcribed text")
    is_final: bool = Field(default=False, description="False while the recognizer may still revise it")
    timestamp: Optional[Union[str, float]] = Field(default=None, description="When the entry was produced")


class TopicNode(CamelModel):
    """A cluster of conversation text sharing one theme"""
    id: str = Field(description="Unique node id, assigned at creation")
    label: str = Field(description="Short topic title")
    keywords: List[str] = Field(default_factory=list, description="Key concepts, latest analysis wins")
    summary: str = Field(default="", description="One sentence summary, latest analysis wins")
    text: str = Field(default="", description="All source text merged into this topic")
    word_count: int = Field(default=0, description="Token count of text, always recomputed")
    timestamp: int = Field(default=0, description="Creation time in epoch milliseconds")
    x: float = Field(default=0.0, description="Semantic x position")
    y: float = Field(default=0.0, description="Semantic y position")

    @model_validator(mode="after")
    def _sync_word_count(self) -> "TopicNode":
        self.word_count = count_words(self.text)
        return self


class TopicEdge(CamelModel):
    """Directed transition from one active topic to another"""
    source: str = Field(description="Id of the topic the conversation left")
    target: str = Field(description="Id of the topic the conversation moved to")
    timestamp: int = Field(default=0, description="Creation time in epoch milliseconds")


class PriorTopic(CamelModel):
    """Minimal descriptor of an existing topic sent to the oracle"""
    label: str
    x: float = 0.0
    y: float = 0.0


class AnalysisResult(CamelModel):
    """Oracle verdict for one batch of pending text"""
    is_new_topic: bool = Field(default=False, description="True when the batch starts a new topic")
    matching_topic_label: Optional[str] = Field(default=None, description="Label of the continued topic")
    topic_label: str = Field(description="Short descriptive label")
    keywords: List[str] = Field(default_factory=list, description="3-5 key concepts")
    summary: str = Field(default="", description="Brief one sentence summary")
    x: Optional[float] = Field(default=None, description="Semantic x position, None when absent")
    y: Optional[float] = Field(default=None, description="Semantic y position, None when absent")

    @field_validator("keywords", mode="before")
    @classmethod
    def _keywords_or_empty(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value if item is not None]
        return value

    @field_validator("summary", mode="before")
    @classmethod
    def _summary_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class GraphState(CamelModel):
    """Complete topic graph state for one session"""
    nodes: List[TopicNode] = Field(default_factory=list, description="Creation order")
    edges: List[TopicEdge] = Field(default_factory=list, description="Creation order")
    current_topic_id: Optional[str] = Field(default=None, description="Most recently active node")
    last_processed_index: int = Field(default=0, description="Final transcript entries already folded in")
    pending_text: str = Field(default="", description="Text waiting to be analyzed")
    is_analyzing: bool = Field(default=False, description="Transient, never persisted")

    def find_node(self, node_id: Optional[str]) -> Optional[TopicNode]:
        if node_id is None:
            return None
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def prior_topics(self) -> List[PriorTopic]:
        return [PriorTopic(label=node.label, x=node.x, y=node.y) for node in self.nodes]

    def to_snapshot(self) -> dict[str, Any]:
        """Persisted/exported shape, isAnalyzing excluded"""
        return self.model_dump(by_alias=True, exclude={"is_analyzing"})
