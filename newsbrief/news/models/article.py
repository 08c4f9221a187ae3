"""
Standardized records flowing through the summarization pipeline.
"""

import hashlib
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class GeoContext:
    """Geography attached to a request. Every field may be empty."""
    city: str = ""
    region: str = ""
    country: str = ""
    country_code: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.city or self.region or self.country or self.country_code)

    @property
    def provider_country(self) -> str:
        """Country value sent to the provider's country filter."""
        return (self.country_code or self.country).lower()

    def tokens(self, min_length: int = 2) -> List[str]:
        """Lowercase, de-duplicated geo tokens usable for substring matching."""
        out: List[str] = []
        for value in (self.city, self.region, self.country, self.country_code):
            token = (value or "").strip().lower()
            if len(token) >= min_length and token not in out:
                out.append(token)
        return out

    def cache_fragment(self) -> str:
        return f"{self.provider_country}-{self.region}-{self.city}"


@dataclass(frozen=True)
class Article:
    """Normalized provider record"""
    title: str = ""
    description: str = ""
    url: str = ""
    source: str = ""
    published_at: str = ""
    url_to_image: str = ""

    @classmethod
    def from_provider(cls, raw: Dict[str, Any]) -> "Article":
        source = raw.get("source")
        if isinstance(source, dict):
            source_name = source.get("name") or ""
        else:
            source_name = source or ""
        return cls(
            title=raw.get("title") or "",
            description=raw.get("description") or "",
            url=raw.get("url") or "",
            source=source_name,
            published_at=raw.get("publishedAt") or "",
            url_to_image=raw.get("urlToImage") or "",
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        return cls(**{key: data.get(key) or "" for key in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @property
    def dedup_key(self) -> str:
        if self.url:
            return f"url::{self.url}"
        digest = hashlib.sha1(f"{self.title}|{self.source}".encode("utf-8")).hexdigest()
        return f"id::{digest}"


@dataclass
class FetchResult:
    articles: List[Article] = field(default_factory=list)
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"articles": [a.to_dict() for a in self.articles]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FetchResult":
        return cls(articles=[Article.from_dict(a) for a in data.get("articles") or []])


@dataclass
class SummaryItem:
    """User-facing representation of a retained article"""
    id: str
    title: str
    snippet: str
    source: str
    url: str
    topic: str

    @property
    def identity(self) -> str:
        return self.url or self.id

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.snippet,
            "source": self.source,
            "url": self.url,
            "topic": self.topic,
        }


@dataclass
class PipelineResult:
    items: List[SummaryItem] = field(default_factory=list)
    combined_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "combined": {
                "text": self.combined_text,
                "audioUrl": None,
            },
        }
