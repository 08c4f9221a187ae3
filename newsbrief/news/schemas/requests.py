"""Summarize API request schemas"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_WORD_COUNT = 200


class GeoPayload(BaseModel):
    """Structured geography as sent by clients"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    city: Optional[str] = None
    region: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = Field(default=None, alias="countryCode")

    def to_mapping(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SummarizeRequest(BaseModel):
    """Request model for a multi-topic summary"""
    model_config = ConfigDict(populate_by_name=True)

    topics: List[str] = Field(default_factory=list, description="Topics to summarize, processed concurrently")
    word_count: int = Field(default=DEFAULT_WORD_COUNT, alias="wordCount", description="Target summary length")
    location: str = Field(default="", description='Free-text location such as "Austin, TX"')
    geo: Optional[GeoPayload] = Field(default=None, description="Structured geography; wins over location")
    good_news_only: bool = Field(default=False, alias="goodNewsOnly", description="Keep only uplifting articles")

    @field_validator("topics", mode="before")
    @classmethod
    def topics_must_be_list(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("topics must be an array")
        return [str(topic) for topic in value]

    @field_validator("word_count", mode="before")
    @classmethod
    def default_word_count(cls, value):
        # Non-numeric or non-positive values fall back to the default length
        try:
            count = int(value)
        except (TypeError, ValueError):
            return DEFAULT_WORD_COUNT
        return count if count > 0 else DEFAULT_WORD_COUNT

    @field_validator("location", mode="before")
    @classmethod
    def location_as_text(cls, value):
        return value if isinstance(value, str) else ""

    def to_pipeline_kwargs(self) -> Dict[str, Any]:
        return {
            "topics": self.topics,
            "word_count": self.word_count,
            "geo": self.geo.to_mapping() if self.geo else None,
            "location": self.location,
            "uplifting_only": self.good_news_only,
        }


class BatchSummarizeRequest(BaseModel):
    """Several independent summarize requests served under one quota check"""
    batches: List[SummarizeRequest] = Field(default_factory=list)

    @field_validator("batches", mode="before")
    @classmethod
    def batches_must_be_list(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("batches must be an array")
        return value
