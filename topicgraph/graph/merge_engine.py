"""
Graph Merge Engine
Applies an oracle verdict to the topic graph state
"""

import logging
from typing import Collection, List, Optional

from topicgraph.graph.models import AnalysisResult, GraphState, TopicEdge, TopicNode

logger = logging.getLogger(__name__)


def make_topic_id(now: int, existing_ids: Collection[str]) -> str:
    """
    Build a ``topic-<now>`` id, suffixed when another node already has it.

    Two merges landing on the same millisecond would otherwise collide.
    """
    base = f"topic-{now}"
    if base not in existing_ids:
        return base
    suffix = 1
    while f"{base}-{suffix}" in existing_ids:
        suffix += 1
    return f"{base}-{suffix}"


def resolve_target(nodes: List[TopicNode], result: AnalysisResult) -> Optional[TopicNode]:
    """
    Find the existing node a continuing verdict refers to.

    Returns None when the verdict starts a new topic or names no existing
    label; the earliest created node wins when labels repeat.
    """
    if result.is_new_topic:
        return None
    for node in nodes:
        if node.label == result.matching_topic_label:
            return node
    return None


def _create_node(state: GraphState, result: AnalysisResult, analyzed_text: str, now: int) -> TopicNode:
    node_id = make_topic_id(now, {node.id for node in state.nodes})
    return TopicNode(
        id=node_id,
        label=result.topic_label,
        keywords=list(result.keywords),
        summary=result.summary,
        text=analyzed_text,
        timestamp=now,
        x=result.x if result.x is not None else 0.0,
        y=result.y if result.y is not None else 0.0,
    )


def _continue_node(node: TopicNode, result: AnalysisResult, analyzed_text: str) -> TopicNode:
    return TopicNode(
        id=node.id,
        label=node.label,
        keywords=list(result.keywords),
        summary=result.summary,
        text=f"{node.text} {analyzed_text}",
        timestamp=node.timestamp,
        x=result.x if result.x is not None else node.x,
        y=result.y if result.y is not None else node.y,
    )


def apply_analysis(state: GraphState, result: AnalysisResult, analyzed_text: str, now: int) -> GraphState:
    """
    Merge one analysis result into the graph.

    The input state is never mutated; a complete new state is returned so
    callers can swap it in with a single assignment.

    Args:
        state: Current graph state
        result: Oracle verdict for ``analyzed_text``
        analyzed_text: The pending text snapshot that was sent to the oracle
        now: Merge time in epoch milliseconds

    Returns:
        New state with the node created or extended, at most one new edge,
        the current topic advanced and the pending text cleared
    """
    nodes = list(state.nodes)
    edges = list(state.edges)

    target = resolve_target(nodes, result)
    if target is None:
        target = _create_node(state, result, analyzed_text, now)
        nodes.append(target)
        logger.info(f"Created topic {target.id}: '{target.label}'")
    else:
        updated = _continue_node(target, result, analyzed_text)
        nodes = [updated if node.id == target.id else node for node in nodes]
        target = updated
        logger.info(f"Extended topic {target.id}: '{target.label}' ({target.word_count} words)")

    previous_id = state.current_topic_id
    if previous_id is not None and previous_id != target.id:
        already_linked = any(edge.source == previous_id and edge.target == target.id for edge in edges)
        if not already_linked:
            edges.append(TopicEdge(source=previous_id, target=target.id, timestamp=now))
            logger.info(f"Linked topic {previous_id} -> {target.id}")

    return state.model_copy(update={
        "nodes": nodes,
        "edges": edges,
        "current_topic_id": target.id,
        "pending_text": "",
        "is_analyzing": False,
    })
