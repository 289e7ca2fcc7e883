"""
Unit tests for the graph view projection
"""

import pytest

from topicgraph.graph.models import GraphState, TopicEdge, TopicNode
from topicgraph.graph.view import node_size, project_view


@pytest.mark.parametrize("word_count, expected", [
    (0, 30.0),
    (90, 30.0),
    (150, 50.0),
    (300, 100.0),
    (3000, 100.0),
])
def test_node_size_is_clamped(word_count, expected):
    assert node_size(word_count) == expected


def test_projection_marks_active_node_and_passes_edges_through():
    state = GraphState(
        nodes=[
            TopicNode(id="a", label="A", text=" ".join(["w"] * 150)),
            TopicNode(id="b", label="B", text="short"),
        ],
        edges=[TopicEdge(source="a", target="b", timestamp=5)],
        current_topic_id="b",
        is_analyzing=True,
    )

    view = project_view(state)

    assert [(n.id, n.size, n.is_active) for n in view.nodes] == [("a", 50.0, False), ("b", 30.0, True)]
    assert view.edges == state.edges
    assert view.is_analyzing is True
    assert view.nodes[0].word_count == 150


def test_projection_has_no_side_effects():
    state = GraphState(nodes=[TopicNode(id="a", label="A", text="x")], current_topic_id="a")
    before = state.model_dump()
    project_view(state)
    project_view(state)
    assert state.model_dump() == before


def test_view_serializes_with_wire_keys():
    state = GraphState(nodes=[TopicNode(id="a", label="A", text="x")], current_topic_id="a")
    dumped = project_view(state).model_dump(by_alias=True)
    assert dumped["isAnalyzing"] is False
    assert dumped["nodes"][0]["isActive"] is True
    assert dumped["nodes"][0]["wordCount"] == 1
    assert dumped["nodes"][0]["size"] == 30.0
