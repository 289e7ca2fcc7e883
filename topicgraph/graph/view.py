"""Render-ready projection of the topic graph"""

from typing import List

from pydantic import Field

from topicgraph.graph.models import CamelModel, GraphState, TopicEdge, TopicNode

MIN_NODE_SIZE = 30.0
MAX_NODE_SIZE = 100.0


class TopicNodeView(TopicNode):
    size: float = Field(description="Display size derived from word count")
    is_active: bool = Field(description="True for the current topic")


class GraphView(CamelModel):
    nodes: List[TopicNodeView] = Field(default_factory=list)
    edges: List[TopicEdge] = Field(default_factory=list)
    is_analyzing: bool = False


def node_size(word_count: int) -> float:
    return max(MIN_NODE_SIZE, min(MAX_NODE_SIZE, word_count / 3))


def project_view(state: GraphState) -> GraphView:
    """Pure derivation of the view; safe to call on every state change"""
    nodes = [
        TopicNodeView(
            **node.model_dump(),
            size=node_size(node.word_count),
            is_active=node.id == state.current_topic_id,
        )
        for node in state.nodes
    ]
    return GraphView(nodes=nodes, edges=list(state.edges), is_analyzing=state.is_analyzing)
