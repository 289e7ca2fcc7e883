"""Error kinds raised across the topic graph pipeline."""


class TopicGraphError(Exception):
    """Base class for all topic graph errors"""


class TransportFailure(TopicGraphError):
    """Network or HTTP error while calling the classification oracle"""


class ParseFailure(TopicGraphError):
    """Oracle response did not contain a usable JSON object"""


class PersistenceFailure(TopicGraphError):
    """Durable storage read, write or remove failed"""


class ValidationFailure(TopicGraphError):
    """Imported snapshot payload is not an object"""
