from topicgraph.sse.event_emitter import GraphEventType, SSEEventEmitter

__all__ = [
    "GraphEventType",
    "SSEEventEmitter",
]
