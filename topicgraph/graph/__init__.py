from topicgraph.graph.models import (
    AnalysisResult,
    GraphState,
    PriorTopic,
    TopicEdge,
    TopicNode,
    TranscriptEntry,
    count_words,
)
from topicgraph.graph.merge_engine import apply_analysis, make_topic_id, resolve_target
from topicgraph.graph.view import GraphView, TopicNodeView, node_size, project_view

__all__ = [
    "AnalysisResult",
    "GraphState",
    "PriorTopic",
    "TopicEdge",
    "TopicNode",
    "TranscriptEntry",
    "count_words",
    "apply_analysis",
    "make_topic_id",
    "resolve_target",
    "GraphView",
    "TopicNodeView",
    "node_size",
    "project_view",
]
