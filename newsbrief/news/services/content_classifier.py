from typing import Iterable, List

from ..models.article import Article

UPLIFTING_KEYWORDS = (
    "breakthrough", "achievement", "success", "victory", "triumph", "milestone",
    "innovation", "discovery", "progress", "advancement", "improvement", "growth",
    "celebration", "record", "award", "recognition", "honor", "accomplishment",
    "recovery", "healing", "cure", "treatment", "solution", "rescue", "save",
    "donation", "charity", "volunteer", "help", "support", "community", "kindness",
    "environmental", "sustainability", "green", "renewable", "clean energy", "conservation",
    "education", "learning", "scholarship", "graduation", "inspiration", "motivation",
    "art", "culture", "festival", "celebration", "music", "creativity", "beauty",
    "sports", "championship", "medal", "gold", "silver", "bronze", "teamwork",
    "technology", "invention", "startup", "funding", "investment", "entrepreneur",
    "hope", "optimism", "resilience", "courage", "determination", "perseverance",
)

NEGATIVE_KEYWORDS = (
    "death", "died", "killed", "murder", "crime", "violence", "attack", "war",
    "conflict", "battle", "fighting", "bomb", "explosion", "disaster", "accident",
    "crash", "fire", "flood", "earthquake", "crisis", "emergency", "danger", "threat",
    "risk", "problem", "scandal", "corruption", "fraud", "theft", "robbery", "arrest",
    "disease", "pandemic", "outbreak", "infection", "virus", "illness", "recession",
    "unemployment", "layoff", "bankruptcy", "debt", "loss",
)


def is_uplifting(article: Article) -> bool:
    """Negative keywords veto; otherwise at least one uplifting keyword is required."""
    text = f"{article.title} {article.description}".lower()
    if any(keyword in text for keyword in NEGATIVE_KEYWORDS):
        return False
    return any(keyword in text for keyword in UPLIFTING_KEYWORDS)


def filter_uplifting(articles: Iterable[Article]) -> List[Article]:
    return [article for article in articles if is_uplifting(article)]
