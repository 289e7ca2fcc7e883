from typing import Callable

import pytest

from oracle_fakes import ORACLE_URL, FakeOracle
from topicgraph.core.config import DebounceConfig, OracleClientConfig, StorageConfig, TopicGraphConfig
from topicgraph.session import TopicGraphSession
from topicgraph.storage import InMemoryStore, PersistenceAdapter


@pytest.fixture
def fast_config() -> TopicGraphConfig:
    return TopicGraphConfig(
        debounce=DebounceConfig(min_words_for_analysis=15, debounce_seconds=0.05),
        oracle=OracleClientConfig(url=ORACLE_URL),
        storage=StorageConfig(backend="memory"),
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def make_session(fast_config, store) -> Callable[..., TopicGraphSession]:
    """Factory building a session around a FakeOracle and the shared in-memory store"""
    clock_values = iter(range(1_700_000_000_000, 1_700_000_000_000 + 10_000_000, 1000))

    def _make(oracle: FakeOracle, config: TopicGraphConfig = None) -> TopicGraphSession:
        return TopicGraphSession(
            config=config or fast_config,
            classifier=oracle.client(),
            persistence=PersistenceAdapter(store, key="topic-graph"),
            clock=lambda: next(clock_values),
        )

    return _make


