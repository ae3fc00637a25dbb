"""Engine configuration.

Values come from, in increasing priority:

* the defaults on :class:`EngineConfig`
* ``STANCE_*`` environment variables (a ``.env`` file is honoured)
* keyword overrides passed to :func:`load_config`

Anything invalid is fatal at load time and surfaces as :class:`ConfigurationError`.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Literal, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the catalog or engine configuration is unusable."""


# Stance word lists. These are reasonable defaults, not a contract; replace them
# through ``STANCE_LEXICON_PATH`` or ``load_config(lexicon=...)``.
DEFAULT_PRO_TERMS = (
    "support", "supports", "supported", "agree", "agrees", "endorse", "endorses",
    "favor", "favour", "approve", "approves", "back", "backs", "champion",
    "advocate", "defend", "defends", "embrace", "embraces", "right", "correct",
    "good", "great", "important", "necessary", "essential", "should", "must", "need",
)

DEFAULT_ANTI_TERMS = (
    "oppose", "opposes", "opposed", "disagree", "disagrees", "reject", "rejects",
    "against", "condemn", "condemns", "criticize", "criticise", "denounce",
    "attack", "wrong", "bad", "dangerous", "harmful", "terrible", "stupid",
    "insane", "ridiculous", "disaster", "failure", "shouldn't", "must not",
)

DEFAULT_NEGATIONS = (
    "not", "never", "no", "don't", "doesn't", "won't", "can't", "wouldn't",
    "isn't", "aren't", "neither", "hardly", "barely", "without",
)

DEFAULT_INTENSIFIERS = {
    "very": 1.3,
    "extremely": 1.5,
    "absolutely": 1.4,
    "completely": 1.4,
    "totally": 1.3,
    "strongly": 1.4,
    "deeply": 1.3,
    "firmly": 1.3,
    "somewhat": 0.7,
    "slightly": 0.5,
    "kind of": 0.6,
    "sort of": 0.6,
}


class Lexicon(BaseModel):
    """Polarity word lists used by the stance scorer."""

    pro: Tuple[str, ...] = DEFAULT_PRO_TERMS
    anti: Tuple[str, ...] = DEFAULT_ANTI_TERMS
    negations: Tuple[str, ...] = DEFAULT_NEGATIONS
    intensifiers: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_INTENSIFIERS))

    model_config = {
        "frozen": True,
    }

    @field_validator("pro", "anti", "negations", mode="before")
    @classmethod
    def _lower_terms(cls, value):
        return tuple(str(term).strip().lower() for term in value if str(term).strip())

    @field_validator("intensifiers")
    @classmethod
    def _positive_multipliers(cls, value: Dict[str, float]) -> Dict[str, float]:
        for term, factor in value.items():
            if factor <= 0:
                raise ValueError(f"intensifier {term!r} must be positive")
        return {term.lower(): factor for term, factor in value.items()}

    @classmethod
    def from_file(cls, path: Path) -> "Lexicon":
        """Load a lexicon from a JSON file with ``pro``/``anti``/... keys."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Lexicon file not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return cls(**data)
        except (json.JSONDecodeError, ValidationError, TypeError) as exc:
            raise ConfigurationError(f"Invalid lexicon file {path}: {exc}") from exc


class EngineConfig(BaseModel):
    """Tunable parameters for a pipeline run."""

    bin_width: timedelta = Field(timedelta(hours=1), description="Width of aggregation bins")
    min_confidence: float = Field(0.15, ge=0, le=1, description="Stance records below this are dropped")
    flip_threshold: float = Field(0.6, gt=0, description="Minimum |stance delta| for a flip")
    min_items_for_flip: int = Field(1, ge=1, description="Records required in both bins of a flip")
    burst_window: timedelta = Field(timedelta(hours=24), description="Look-back/look-ahead around a flip")
    top_keywords: int = Field(5, ge=1)
    keyword_match: Literal["substring", "word"] = Field("substring", description="Topic keyword matching rule")
    content_window: timedelta = Field(timedelta(hours=48), description="Window either side of a flip for top content")
    top_content: int = Field(5, ge=0, description="Highest-engagement items listed per explanation")
    correlation_max_lag: int = Field(6, ge=0, description="Largest stance/mindshare lag tried, in bins")
    lexicon: Lexicon = Field(default_factory=Lexicon)

    model_config = {
        "frozen": True,
    }

    @field_validator("bin_width", "burst_window", "content_window")
    @classmethod
    def _positive_duration(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("duration must be positive")
        return value


# Environment variable -> (config field, converter)
_ENV_FIELDS = {
    "STANCE_BIN_WIDTH_HOURS": ("bin_width", lambda raw: timedelta(hours=float(raw))),
    "STANCE_MIN_CONFIDENCE": ("min_confidence", float),
    "STANCE_FLIP_THRESHOLD": ("flip_threshold", float),
    "STANCE_MIN_ITEMS_FOR_FLIP": ("min_items_for_flip", int),
    "STANCE_BURST_WINDOW_HOURS": ("burst_window", lambda raw: timedelta(hours=float(raw))),
    "STANCE_TOP_KEYWORDS": ("top_keywords", int),
    "STANCE_KEYWORD_MATCH": ("keyword_match", lambda raw: raw.strip().lower()),
    "STANCE_CONTENT_WINDOW_HOURS": ("content_window", lambda raw: timedelta(hours=float(raw))),
    "STANCE_TOP_CONTENT": ("top_content", int),
    "STANCE_CORRELATION_MAX_LAG": ("correlation_max_lag", int),
}


def _values_from_env() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for env_name, (field_name, convert) in _ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is None or raw.strip() == "":
            continue
        try:
            values[field_name] = convert(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{env_name}={raw!r} is not valid: {exc}") from exc

    lexicon_path = os.getenv("STANCE_LEXICON_PATH")
    if lexicon_path:
        values["lexicon"] = Lexicon.from_file(Path(lexicon_path))
    return values


def load_config(**overrides: Any) -> EngineConfig:
    """Build an :class:`EngineConfig` from the environment plus *overrides*.

    Raises
    ------
    ConfigurationError
        If any value is missing, malformed or out of range.
    """
    load_dotenv()

    values = _values_from_env()
    values.update(overrides)
    try:
        config = EngineConfig(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid engine configuration: {exc}") from exc

    logger.debug(
        f"Loaded config: bin_width={config.bin_width}, flip_threshold={config.flip_threshold}, "
        f"min_confidence={config.min_confidence}"
    )
    return config
