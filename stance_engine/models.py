"""Pydantic data models shared by every pipeline stage."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime (naive values are read as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ----------------------------------------------------------------------------
# Reference data
# ----------------------------------------------------------------------------


class Voice(BaseModel):
    """A tracked content author / persona."""

    voice_id: str = Field(..., min_length=1)
    display_name: str
    platform: str = Field(..., description="Primary platform, e.g. 'x', 'youtube', 'podcast'")
    category: str = "other"
    platform_handles: Dict[str, str] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
    }


class Topic(BaseModel):
    """A tracked subject and the seed keywords used to link content to it."""

    topic_id: str = Field(..., min_length=1)
    label: str
    seed_keywords: Tuple[str, ...] = Field(..., description="Ordered, lower-cased, de-duplicated")
    category: Optional[str] = None

    model_config = {
        "frozen": True,
    }

    @field_validator("seed_keywords", mode="before")
    @classmethod
    def _normalise_keywords(cls, value):
        if isinstance(value, str):
            raise ValueError("seed_keywords must be a list of keywords, not a single string")
        seen: list[str] = []
        for keyword in value or ():
            kw = str(keyword).strip().lower()
            if kw and kw not in seen:
                seen.append(kw)
        if not seen:
            raise ValueError("topic needs at least one seed keyword")
        return tuple(seen)


# ----------------------------------------------------------------------------
# Ingest
# ----------------------------------------------------------------------------


class ContentMetrics(BaseModel):
    views: Optional[int] = None
    likes: Optional[int] = None
    comments: Optional[int] = None
    shares: Optional[int] = None

    model_config = {
        "frozen": True,
    }

    @property
    def engagement(self) -> int:
        return (self.views or 0) + (self.likes or 0)


class RawContentItem(BaseModel):
    """One piece of content authored by a voice."""

    id: str = Field(..., min_length=1)
    voice_id: str = Field(..., min_length=1)
    platform: str
    timestamp: datetime
    text: str
    title: Optional[str] = None
    url: Optional[str] = None
    metrics: ContentMetrics = Field(default_factory=ContentMetrics)

    model_config = {
        "frozen": True,
    }

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_validator("text")
    @classmethod
    def _non_empty_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("content text is empty")
        return value

    @property
    def full_text(self) -> str:
        """Title and body joined, the text every stage reads."""
        return f"{self.title}\n{self.text}" if self.title else self.text


class IngestResult(BaseModel):
    items: List[RawContentItem] = Field(default_factory=list)
    skipped: int = 0

    model_config = {
        "frozen": True,
    }


# ----------------------------------------------------------------------------
# Linking and scoring
# ----------------------------------------------------------------------------


class ContentTopicLink(BaseModel):
    content_id: str
    topic_id: str
    confidence: float = Field(..., ge=0, le=1)
    matched_keywords: Tuple[str, ...] = ()

    model_config = {
        "frozen": True,
    }


class StanceRecord(BaseModel):
    """Stance of one content item on one linked topic."""

    voice_id: str
    topic_id: str
    content_id: str
    timestamp: datetime
    stance: float = Field(..., ge=-1, le=1, description="-1 against ... +1 for")
    confidence: float = Field(..., ge=0, le=1)
    platform: Optional[str] = None
    evidence: Tuple[str, ...] = ()

    model_config = {
        "frozen": True,
    }

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


# ----------------------------------------------------------------------------
# Aggregation
# ----------------------------------------------------------------------------


class StanceBin(BaseModel):
    """Aggregated stance of a voice on a topic within one time bin.

    Bins are sparse: a (voice, topic, bin) with no records is absent, which is
    different from a neutral stance of 0.0.
    """

    voice_id: str
    topic_id: str
    bin_start: datetime
    bin_width: timedelta
    mean_stance: float
    count: int = Field(..., ge=1)
    weighted_stance: float
    mean_confidence: float = 0.0
    content_ids: Tuple[str, ...] = ()

    model_config = {
        "frozen": True,
    }

    @property
    def bin_end(self) -> datetime:
        return self.bin_start + self.bin_width

    @property
    def bin_id(self) -> str:
        return f"{self.voice_id}|{self.topic_id}|{self.bin_start.isoformat()}"


class MindshareBin(BaseModel):
    """Share of a topic's discourse volume held by one voice within one bin."""

    voice_id: str
    topic_id: str
    bin_start: datetime
    bin_width: timedelta
    volume: int = Field(..., ge=0)
    share: float = Field(..., ge=0, le=1)
    complete: bool
    platform_volumes: Dict[str, int] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
    }

    @property
    def bin_end(self) -> datetime:
        return self.bin_start + self.bin_width


class AggregationResult(BaseModel):
    stance_bins: List[StanceBin] = Field(default_factory=list)
    mindshare_bins: List[MindshareBin] = Field(default_factory=list)
    complete: bool = True

    model_config = {
        "frozen": True,
    }


# ----------------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------------


class StanceFlipEvent(BaseModel):
    """An abrupt stance reversal between two adjacent, non-empty bins."""

    event_id: str
    voice_id: str
    topic_id: str
    flipped_at: datetime = Field(..., description="Start of the bin after the flip")
    stance_before: float
    stance_after: float
    magnitude: float = Field(..., ge=0)
    supporting_bin_ids: Tuple[str, str]
    direction: str = Field(..., description="'positive' or 'negative'")
    confidence: float = 0.0
    receipts_before: Tuple[str, ...] = ()
    receipts_after: Tuple[str, ...] = ()
    delta_mindshare: Optional[float] = None

    model_config = {
        "frozen": True,
    }


class KeywordBurst(BaseModel):
    keyword: str
    pre_count: int
    post_count: int
    delta: int
    content_ids: Tuple[str, ...] = ()

    model_config = {
        "frozen": True,
    }


class FlipExplanation(BaseModel):
    flip_event_id: str
    keywords: List[KeywordBurst] = Field(default_factory=list)
    top_content_ids: Tuple[str, ...] = Field((), description="Highest-engagement content near the flip")
    narrative_summary: str = ""

    model_config = {
        "frozen": True,
    }


class StanceMindshareCorrelation(BaseModel):
    """Best-lag Pearson correlation between a voice's stance and its mindshare on a topic.

    A positive lag means mindshare moves ``lag_bins`` bins after stance.
    """

    voice_id: str
    topic_id: str
    lag_bins: int
    lag_hours: float
    correlation: float = Field(..., ge=-1, le=1)
    samples: int = Field(..., ge=0)

    model_config = {
        "frozen": True,
    }
