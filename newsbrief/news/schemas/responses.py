"""Summarize API response schemas"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SummaryItemResponse(BaseModel):
    """One retained source article"""
    id: str
    title: str
    summary: str  # truncated snippet
    source: str = ""
    url: str = ""
    topic: str


class CombinedSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")


class SummarizeResponse(BaseModel):
    items: List[SummaryItemResponse] = []
    combined: CombinedSummary


class BatchSummarizeResponse(BaseModel):
    results: List[SummarizeResponse] = []
    batches: List[SummarizeResponse] = []  # same list as results


class UsageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    daily_count: int = Field(alias="dailyCount")
    limit: int
    is_premium: bool = Field(alias="isPremium")
    remaining: Optional[int] = None  # null for premium users


class DailyLimitResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str = "Daily limit reached"
    message: str
    daily_count: int = Field(alias="dailyCount")
    limit: int
