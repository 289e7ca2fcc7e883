"""
TopicGraph Package

Incrementally builds a graph of conversation topics from a live transcript.

Main modules:
- graph: topic nodes/edges, the merge engine and the render view
- text_buffer_manager: debounce batching of finalized transcript text
- oracle: classification client and the optional oracle service
- storage: durable snapshot persistence
- session: wires everything together for one conversation

Usage:
    from topicgraph.session import TopicGraphSession
    from topicgraph.core import get_config
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
