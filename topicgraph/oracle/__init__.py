from topicgraph.oracle.client import TopicClassifierClient, extract_json_object
from topicgraph.oracle.prompts import build_topic_prompt
from topicgraph.oracle.topic_oracle import TopicOracle

__all__ = ["TopicClassifierClient", "TopicOracle", "build_topic_prompt", "extract_json_object"]
