"""Prompt for the topic classification oracle"""

from typing import Any, Mapping, Sequence

TOPIC_ANALYSIS_PROMPT = """Analyze the following conversation text and determine:
1. What is the main topic/theme being discussed?
2. Provide a short topic label (2-5 words)
3. Extract 3-5 key concepts or keywords
4. Compare this to previous topics: {previous_labels}
5. Determine if this is a NEW topic or continues an existing topic (provide the matching topic label if continuing)
6. Assign semantic 2D coordinates (x, y) from -100 to 100 for this topic:
   - X-axis: Abstract/Conceptual (-100) vs Concrete/Practical (100)
   - Y-axis: Technical/Complex (-100) vs Simple/General (100)
   - Consider the semantic meaning and place the topic appropriately in this space

Conversation text:
"{conversation_text}"
{positions}
Respond in JSON format:
{{
  "isNewTopic": true/false,
  "matchingTopicLabel": "label if continuing existing topic, or null",
  "topicLabel": "short descriptive label",
  "keywords": ["keyword1", "keyword2", "keyword3"],
  "summary": "brief 1-sentence summary of what's being discussed",
  "x": number between -100 and 100,
  "y": number between -100 and 100
}}"""


def _format_positions(previous_topics: Sequence[Mapping[str, Any]]) -> str:
    if not previous_topics:
        return ""
    lines = [f'- "{topic.get("label")}" at ({topic.get("x")}, {topic.get("y")})' for topic in previous_topics]
    return (
        "\nPrevious topics and their positions:\n"
        + "\n".join(lines)
        + "\nTry to position this topic semantically close to related topics.\n"
    )


def build_topic_prompt(conversation_text: str, previous_topics: Sequence[Mapping[str, Any]]) -> str:
    labels = ", ".join(str(topic.get("label")) for topic in previous_topics) if previous_topics else "none"
    return TOPIC_ANALYSIS_PROMPT.format(
        previous_labels=labels,
        conversation_text=conversation_text,
        positions=_format_positions(previous_topics),
    )
