from enum import Enum
from typing import Tuple


CORE_CATEGORIES = frozenset({
    "business",
    "entertainment",
    "general",
    "health",
    "science",
    "sports",
    "technology",
    "world",  # not a provider category; queried as free text
})

# Categories sampled once each for the "general" meta-topic
GENERAL_FANOUT_CATEGORIES: Tuple[str, ...] = (
    "business",
    "entertainment",
    "health",
    "science",
    "sports",
    "technology",
    "world",
)

FREE_TEXT_ONLY_CATEGORIES = frozenset({"world"})

LOCAL_TOPIC = "local"
GENERAL_TOPIC = "general"


class TopicClass(str, Enum):
    CATEGORY = "category"
    GENERAL = "general"
    LOCAL = "local"
    FREE_TEXT = "free_text"


def normalize_topic(topic) -> str:
    return str(topic or "").strip().lower()


def is_core_category(topic: str) -> bool:
    return normalize_topic(topic) in CORE_CATEGORIES


def classify_topic(topic: str) -> TopicClass:
    """Pick the fetch strategy for a topic."""
    normalized = normalize_topic(topic)
    if normalized == GENERAL_TOPIC:
        return TopicClass.GENERAL
    if normalized == LOCAL_TOPIC:
        return TopicClass.LOCAL
    if normalized in CORE_CATEGORIES and normalized not in FREE_TEXT_ONLY_CATEGORIES:
        return TopicClass.CATEGORY
    return TopicClass.FREE_TEXT
