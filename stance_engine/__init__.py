"""Stance × Mindshare Engine.

Batch pipeline that links voices' content to tracked topics, scores stance,
bins stance and mindshare over time, and detects + explains stance flips.
"""

from .aggregator import aggregate
from .burst_explainer import BurstExplainer
from .catalog import Catalog, load_catalog, load_catalog_file
from .config import ConfigurationError, EngineConfig, Lexicon, load_config
from .correlation import correlate_flips, correlate_stance_mindshare, cross_correlate
from .flip_detector import attach_mindshare, detect_flips
from .ingest import load_content_file, parse_content_items
from .models import (
    AggregationResult,
    ContentMetrics,
    ContentTopicLink,
    FlipExplanation,
    IngestResult,
    KeywordBurst,
    MindshareBin,
    RawContentItem,
    StanceBin,
    StanceFlipEvent,
    StanceMindshareCorrelation,
    StanceRecord,
    Topic,
    Voice,
)
from .pipeline import PipelineResult, run_pipeline
from .stance_scorer import StanceScorer
from .topic_linker import TopicLinker, link

__all__ = [
    "AggregationResult",
    "BurstExplainer",
    "Catalog",
    "ConfigurationError",
    "ContentMetrics",
    "ContentTopicLink",
    "EngineConfig",
    "FlipExplanation",
    "IngestResult",
    "KeywordBurst",
    "Lexicon",
    "MindshareBin",
    "PipelineResult",
    "RawContentItem",
    "StanceBin",
    "StanceFlipEvent",
    "StanceMindshareCorrelation",
    "StanceRecord",
    "StanceScorer",
    "Topic",
    "TopicLinker",
    "Voice",
    "aggregate",
    "attach_mindshare",
    "correlate_flips",
    "correlate_stance_mindshare",
    "cross_correlate",
    "detect_flips",
    "link",
    "load_catalog",
    "load_catalog_file",
    "load_config",
    "load_content_file",
    "parse_content_items",
    "run_pipeline",
]

__version__ = "0.1.0"
