"""
Unit tests for snapshot stores and the persistence adapter
"""

import json

import pytest

from topicgraph.core.config import StorageConfig
from topicgraph.errors import PersistenceFailure, ValidationFailure
from topicgraph.graph.models import GraphState, TopicEdge, TopicNode
from topicgraph.sse.event_emitter import GraphEventType
from topicgraph.storage import (
    InMemoryStore,
    JsonFileStore,
    PersistenceAdapter,
    PersistenceListener,
    coerce_snapshot,
    create_store,
    parse_snapshot,
)
from topicgraph.storage.stores import KeyValueStore


class BrokenStore(KeyValueStore):
    """Every operation fails"""

    def __init__(self):
        self.calls = []

    def get(self, key):
        self.calls.append("get")
        raise PersistenceFailure("disk unavailable")

    def set(self, key, value):
        self.calls.append("set")
        raise PersistenceFailure("disk full")

    def remove(self, key):
        self.calls.append("remove")
        raise PersistenceFailure("read-only")


def sample_state() -> GraphState:
    return GraphState(
        nodes=[
            TopicNode(id="a", label="Planning", keywords=["plan"], summary="s", text="one two", timestamp=1, x=1, y=2),
            TopicNode(id="b", label="Budget", text="three", timestamp=2),
        ],
        edges=[TopicEdge(source="a", target="b", timestamp=3)],
        current_topic_id="b",
        last_processed_index=4,
        pending_text="waiting words",
        is_analyzing=True,
    )


def test_snapshot_shape_uses_wire_keys_and_drops_is_analyzing():
    snapshot = sample_state().to_snapshot()

    assert set(snapshot) == {"nodes", "edges", "currentTopicId", "lastProcessedIndex", "pendingText"}
    assert snapshot["nodes"][0] == {
        "id": "a", "label": "Planning", "keywords": ["plan"], "summary": "s", "text": "one two",
        "wordCount": 2, "timestamp": 1, "x": 1.0, "y": 2.0,
    }
    assert snapshot["edges"] == [{"source": "a", "target": "b", "timestamp": 3}]


class TestCoerceSnapshot:

    def test_valid_snapshot_is_restored(self):
        state = sample_state()
        restored = coerce_snapshot(json.loads(json.dumps(state.to_snapshot())))
        assert restored == state.model_copy(update={"is_analyzing": False})

    def test_each_field_falls_back_independently(self):
        data = sample_state().to_snapshot()
        data["edges"] = "not a list"
        data["pendingText"] = 42
        data["lastProcessedIndex"] = "seven"

        restored = coerce_snapshot(data)

        assert [n.id for n in restored.nodes] == ["a", "b"]
        assert restored.edges == []
        assert restored.pending_text == ""
        assert restored.last_processed_index == 0
        assert restored.current_topic_id == "b"

    def test_negative_or_boolean_index_becomes_zero(self):
        assert coerce_snapshot({"lastProcessedIndex": -3}).last_processed_index == 0
        assert coerce_snapshot({"lastProcessedIndex": True}).last_processed_index == 0

    def test_word_count_is_recomputed_from_text(self):
        data = {"nodes": [{"id": "a", "label": "L", "text": "four words right here", "wordCount": 99}]}
        assert coerce_snapshot(data).nodes[0].word_count == 4

    def test_malformed_nodes_and_duplicate_ids_are_dropped(self):
        data = {"nodes": [
            {"id": "a", "label": "Planning"},
            {"label": "no id"},
            "garbage",
            {"id": "a", "label": "Duplicate"},
        ]}
        restored = coerce_snapshot(data)
        assert [(n.id, n.label) for n in restored.nodes] == [("a", "Planning")]

    def test_invalid_edges_are_dropped(self):
        data = {
            "nodes": [{"id": "a", "label": "A"}, {"id": "b", "label": "B"}],
            "edges": [
                {"source": "a", "target": "b", "timestamp": 1},
                {"source": "a", "target": "b", "timestamp": 2},
                {"source": "a", "target": "a", "timestamp": 3},
                {"source": "a", "target": "ghost", "timestamp": 4},
                {"source": "b"},
            ],
        }
        restored = coerce_snapshot(data)
        assert [(e.source, e.target, e.timestamp) for e in restored.edges] == [("a", "b", 1)]

    def test_node_with_non_finite_coordinate_is_dropped(self):
        data = json.loads('{"nodes": [{"id": "a", "label": "A", "x": NaN}, {"id": "b", "label": "B"}]}')
        assert [n.id for n in coerce_snapshot(data).nodes] == ["b"]

    def test_dangling_current_topic_becomes_null(self):
        assert coerce_snapshot({"nodes": [], "currentTopicId": "ghost"}).current_topic_id is None

    @pytest.mark.parametrize("payload", [None, [], "snapshot", 3, [{"nodes": []}]])
    def test_parse_rejects_non_objects(self, payload):
        with pytest.raises(ValidationFailure):
            parse_snapshot(payload)

    def test_parse_accepts_empty_object(self):
        assert parse_snapshot({}) == GraphState()


class TestStores:

    def test_in_memory_round_trip(self):
        store = InMemoryStore()
        assert store.get("k") is None
        store.set("k", {"a": [1]})
        assert store.get("k") == {"a": [1]}
        store.remove("k")
        assert "k" not in store
        store.remove("k")

    def test_in_memory_rejects_unserializable_values(self):
        with pytest.raises(PersistenceFailure):
            InMemoryStore().set("k", {"bad": object()})

    def test_json_file_store(self, tmp_path):
        store = JsonFileStore(tmp_path / "snapshots")
        assert store.get("topic graph") is None

        store.set("topic graph", {"nodes": []})
        written = tmp_path / "snapshots" / "topic_graph.json"
        assert json.loads(written.read_text()) == {"nodes": []}
        assert store.get("topic graph") == {"nodes": []}
        assert [p.name for p in (tmp_path / "snapshots").iterdir()] == ["topic_graph.json"]

        store.remove("topic graph")
        assert not written.exists()
        store.remove("topic graph")

    def test_corrupt_file_raises_persistence_failure(self, tmp_path):
        (tmp_path / "topic-graph.json").write_text("{ not json")
        with pytest.raises(PersistenceFailure):
            JsonFileStore(tmp_path).get("topic-graph")

    def test_undecodable_file_falls_back_to_empty_state(self, tmp_path):
        (tmp_path / "topic-graph.json").write_bytes(b'{"pendingText": "\xff\xfe"}')
        with pytest.raises(PersistenceFailure):
            JsonFileStore(tmp_path).get("topic-graph")
        assert PersistenceAdapter(JsonFileStore(tmp_path), key="topic-graph").load() == GraphState()

    def test_create_store(self, tmp_path):
        assert create_store(StorageConfig(backend="none")) is None
        assert isinstance(create_store(StorageConfig(backend="memory")), InMemoryStore)
        file_store = create_store(StorageConfig(backend="file", directory=str(tmp_path)))
        assert isinstance(file_store, JsonFileStore)
        assert file_store.directory == tmp_path

    def test_default_file_store_lives_under_topicgraph_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOPICGRAPH_HOME", str(tmp_path))
        file_store = create_store(StorageConfig(backend="file"))
        assert file_store.directory == tmp_path / "snapshots"
        assert file_store.directory.is_dir()


class TestPersistenceAdapter:

    def test_load_defaults_without_storage(self):
        assert PersistenceAdapter(None).load() == GraphState()

    def test_load_defaults_on_missing_or_non_object_record(self):
        store = InMemoryStore()
        adapter = PersistenceAdapter(store, key="k")
        assert adapter.load() == GraphState()
        store.set("k", ["not", "an", "object"])
        assert adapter.load() == GraphState()

    def test_save_then_load(self):
        adapter = PersistenceAdapter(InMemoryStore(), key="k")
        result = adapter.save(sample_state())

        assert result.ok is True
        assert result.saved_at is not None
        assert adapter.load().nodes == sample_state().nodes
        assert adapter.statistics["saves"] == 1

    def test_storage_errors_are_absorbed(self):
        adapter = PersistenceAdapter(BrokenStore(), key="k")

        assert adapter.load() == GraphState()
        saved = adapter.save(sample_state())
        assert saved.ok is False
        assert "disk full" in saved.error
        cleared = adapter.clear()
        assert cleared.ok is False
        assert adapter.statistics["failed_saves"] == 1

    def test_save_without_storage_reports_failure(self):
        assert PersistenceAdapter(None).save(GraphState()).ok is False
        assert PersistenceAdapter(None).clear().ok is True


class TestPersistenceListener:

    @pytest.mark.asyncio
    async def test_writes_are_scheduled_and_ordered(self):
        store = InMemoryStore()
        listener = PersistenceListener(PersistenceAdapter(store, key="k"))

        first = GraphState(pending_text="first")
        second = GraphState(pending_text="second")
        listener(first, GraphEventType.TRANSCRIPT_FOLDED)
        listener(second, GraphEventType.TRANSCRIPT_FOLDED)
        await listener.flush()

        assert store.get("k")["pendingText"] == "second"
        listener.close()

    @pytest.mark.asyncio
    async def test_reset_event_removes_record(self):
        store = InMemoryStore()
        store.set("k", {"pendingText": "old"})
        listener = PersistenceListener(PersistenceAdapter(store, key="k"))

        listener(GraphState(), GraphEventType.GRAPH_RESET)
        await listener.flush()

        assert "k" not in store
        listener.close()

    @pytest.mark.asyncio
    async def test_failing_store_never_raises_into_caller(self):
        broken = BrokenStore()
        listener = PersistenceListener(PersistenceAdapter(broken, key="k"))

        listener(sample_state(), GraphEventType.GRAPH_UPDATED)
        result = await listener.save_now(sample_state())
        await listener.flush()

        assert result.ok is False
        assert broken.calls == ["set", "set"]
        listener.close()

    def test_writes_inline_without_event_loop(self):
        store = InMemoryStore()
        listener = PersistenceListener(PersistenceAdapter(store, key="k"))
        listener(GraphState(pending_text="sync"), GraphEventType.GRAPH_UPDATED)
        assert store.get("k")["pendingText"] == "sync"
        listener.close()
