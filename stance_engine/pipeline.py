"""End-to-end Stance × Mindshare pipeline.

Stages run strictly in order::

    ingest -> topic linker -> stance scorer -> aggregator -> flip detector -> burst explainer

Each call to :func:`run_pipeline` is self-contained: inputs in, a
:class:`PipelineResult` out, no module-level state.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd
from pydantic import BaseModel, Field

from .aggregator import aggregate
from .burst_explainer import BurstExplainer
from .catalog import Catalog
from .config import EngineConfig, load_config
from .correlation import correlate_flips
from .flip_detector import attach_mindshare, detect_flips
from .ingest import parse_content_items
from .models import (
    FlipExplanation,
    MindshareBin,
    RawContentItem,
    StanceBin,
    StanceFlipEvent,
    StanceMindshareCorrelation,
)
from .stance_scorer import StanceScorer
from .topic_linker import TopicLinker

logger = logging.getLogger(__name__)


def _bin_dict(b: StanceBin | MindshareBin) -> Dict[str, Any]:
    data = b.model_dump(mode="json", exclude={"bin_width"})
    data["bin_end"] = b.bin_end.isoformat()
    data["bin_width_seconds"] = b.bin_width.total_seconds()
    if isinstance(b, StanceBin):
        data["bin_id"] = b.bin_id
    return data


class PipelineResult(BaseModel):
    """Everything a presentation layer needs from one pipeline run."""

    stance_records_count: int = 0
    skipped_items: int = 0
    stance_bins: List[StanceBin] = Field(default_factory=list)
    mindshare_bins: List[MindshareBin] = Field(default_factory=list)
    complete: bool = True
    flips: List[StanceFlipEvent] = Field(default_factory=list)
    explanations: List[FlipExplanation] = Field(default_factory=list)
    correlations: List[StanceMindshareCorrelation] = Field(default_factory=list)

    model_config = {
        "frozen": True,
    }

    def to_dict(self) -> Dict[str, Any]:
        """Export schema: field names mirror the models, datetimes are ISO-8601."""
        return {
            "stance_records_count": self.stance_records_count,
            "skipped_items": self.skipped_items,
            "complete": self.complete,
            "stance_bins": [_bin_dict(b) for b in self.stance_bins],
            "mindshare_bins": [_bin_dict(b) for b in self.mindshare_bins],
            "flips": [f.model_dump(mode="json") for f in self.flips],
            "explanations": [e.model_dump(mode="json") for e in self.explanations],
            "correlations": [c.model_dump(mode="json") for c in self.correlations],
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_frames(self) -> Dict[str, pd.DataFrame]:
        """Return one DataFrame per output collection."""
        data = self.to_dict()
        return {
            "stance_bins": pd.DataFrame(data["stance_bins"]),
            "mindshare_bins": pd.DataFrame(data["mindshare_bins"]),
            "flips": pd.DataFrame(data["flips"]),
            "explanations": pd.DataFrame(data["explanations"]),
            "correlations": pd.DataFrame(data["correlations"]),
        }


def run_pipeline(
    rows: Iterable[Mapping[str, Any] | RawContentItem],
    catalog: Catalog,
    config: EngineConfig | None = None,
) -> PipelineResult:
    """Run every stage over *rows* and return the combined result.

    Bad rows are skipped and counted in ``skipped_items``; they never abort
    the run.
    """
    config = config or load_config()
    start_time = time.time()
    known_voices = catalog.voice_ids or None

    ingest = parse_content_items(rows, known_voices=known_voices)
    items = ingest.items
    logger.info(f"Running stance pipeline on {len(items)} items ({ingest.skipped} skipped)")

    links = TopicLinker(config.keyword_match).link_all(items, catalog.topics)

    scorer = StanceScorer(
        lexicon=config.lexicon,
        min_confidence=config.min_confidence,
        topics=catalog.topics,
        match_mode=config.keyword_match,
    )
    records = scorer.score_all({item.id: item for item in items}, links)

    aggregation = aggregate(
        records,
        config.bin_width,
        voice_universe=known_voices,
        supplied_voices={item.voice_id for item in items},
    )

    flips = detect_flips(aggregation.stance_bins, config.flip_threshold, config.min_items_for_flip)
    flips = attach_mindshare(flips, aggregation.mindshare_bins)

    explainer = BurstExplainer(
        window=config.burst_window,
        top_n=config.top_keywords,
        content_window=config.content_window,
        top_content=config.top_content,
    )
    explanations = explainer.explain_all(flips, items)
    correlations = correlate_flips(
        flips, aggregation.stance_bins, aggregation.mindshare_bins, config.correlation_max_lag
    )

    elapsed = time.time() - start_time
    logger.info(f"Stance pipeline completed in {elapsed:.1f}s: {len(flips)} flips")

    return PipelineResult(
        stance_records_count=len(records),
        skipped_items=ingest.skipped,
        stance_bins=aggregation.stance_bins,
        mindshare_bins=aggregation.mindshare_bins,
        complete=aggregation.complete,
        flips=flips,
        explanations=explanations,
        correlations=correlations,
    )
