"""Time-bin aggregation of stance records into stance and mindshare bins.

Bins are aligned to the Unix epoch rather than to the first record, so bins
built from two overlapping record sets line up and can be merged.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Collection, Dict, List, Sequence

import pandas as pd

from .config import ConfigurationError
from .models import AggregationResult, MindshareBin, StanceBin, StanceRecord

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_US = timedelta(microseconds=1)


def check_bin_width(bin_width: timedelta) -> None:
    if not isinstance(bin_width, timedelta) or bin_width // _ONE_US <= 0:
        raise ConfigurationError(f"bin width must be a positive duration, got {bin_width!r}")


def bin_start_for(timestamp: datetime, bin_width: timedelta) -> datetime:
    """Return ``floor(timestamp / bin_width) * bin_width`` measured from the epoch.

    Integer microseconds keep the boundary exact for any width.
    """
    width_us = bin_width // _ONE_US
    offset_us = (timestamp - EPOCH) // _ONE_US
    return EPOCH + timedelta(microseconds=(offset_us // width_us) * width_us)


def _records_frame(records: Sequence[StanceRecord], bin_width: timedelta) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "voice_id": [r.voice_id for r in records],
            "topic_id": [r.topic_id for r in records],
            "content_id": [r.content_id for r in records],
            "platform": [r.platform or "unknown" for r in records],
            "bin_start": [bin_start_for(r.timestamp, bin_width) for r in records],
            "stance": [r.stance for r in records],
            "confidence": [r.confidence for r in records],
        }
    )


def _to_datetime(value) -> datetime:
    return value.to_pydatetime() if isinstance(value, pd.Timestamp) else value


def _stance_bins(frame: pd.DataFrame, bin_width: timedelta) -> List[StanceBin]:
    bins: List[StanceBin] = []
    for (voice_id, topic_id, bin_start), group in frame.groupby(
        ["voice_id", "topic_id", "bin_start"], sort=True
    ):
        stances = group["stance"]
        confidences = group["confidence"]
        mean_stance = float(stances.mean())
        confidence_mass = float(confidences.sum())
        # Zero confidence mass falls back to the plain mean.
        if confidence_mass > 0:
            weighted = float((stances * confidences).sum()) / confidence_mass
        else:
            weighted = mean_stance

        bins.append(
            StanceBin(
                voice_id=voice_id,
                topic_id=topic_id,
                bin_start=_to_datetime(bin_start),
                bin_width=bin_width,
                mean_stance=mean_stance,
                count=len(group),
                weighted_stance=weighted,
                mean_confidence=float(confidences.mean()),
                content_ids=tuple(sorted(set(group["content_id"]))),
            )
        )
    return bins


def _mindshare_bins(
    frame: pd.DataFrame,
    bin_width: timedelta,
    universe_size: int,
    supplied_size: int,
) -> List[MindshareBin]:
    complete = universe_size == supplied_size
    # Missing voices are assumed to carry the mean supplied-voice volume.
    scale = universe_size / supplied_size

    # Volume counts content items, not records.
    items = frame.drop_duplicates(["topic_id", "bin_start", "voice_id", "content_id"])

    bins: List[MindshareBin] = []
    for (topic_id, bin_start), bin_group in items.groupby(["topic_id", "bin_start"], sort=True):
        # Totals for the whole (topic, bin) are settled before any share is emitted.
        total = len(bin_group)
        denominator = total * scale
        for voice_id, voice_group in bin_group.groupby("voice_id", sort=True):
            volume = len(voice_group)
            platform_volumes: Dict[str, int] = {
                str(k): int(v) for k, v in sorted(voice_group["platform"].value_counts().items())
            }
            bins.append(
                MindshareBin(
                    voice_id=voice_id,
                    topic_id=topic_id,
                    bin_start=_to_datetime(bin_start),
                    bin_width=bin_width,
                    volume=volume,
                    share=min(1.0, volume / denominator),
                    complete=complete,
                    platform_volumes=platform_volumes,
                )
            )
    return bins


def aggregate(
    records: Sequence[StanceRecord],
    bin_width: timedelta,
    voice_universe: Collection[str] | None = None,
    supplied_voices: Collection[str] | None = None,
) -> AggregationResult:
    """Bucket *records* into stance and mindshare bins of width *bin_width*.

    Parameters
    ----------
    records:
        Stance records from the scorer.
    bin_width:
        Positive bin width; anything else raises :class:`ConfigurationError`.
    voice_universe:
        Every voice that could contribute. When omitted, the record set is
        taken to be complete.
    supplied_voices:
        Voices whose content was actually ingested. Defaults to the voices
        present in *records*. If any universe voice was not supplied, every
        mindshare bin is flagged ``complete=False`` and shares no longer sum to 1.
    """
    check_bin_width(bin_width)
    if not records:
        return AggregationResult(stance_bins=[], mindshare_bins=[], complete=True)

    start_time = time.time()
    frame = _records_frame(records, bin_width)

    supplied = set(supplied_voices or ()) | set(frame["voice_id"])
    universe = supplied | set(voice_universe or ())
    missing = universe - supplied
    if voice_universe is not None and missing:
        logger.warning(
            f"Mindshare incomplete: {len(supplied)} of {len(universe)} voices supplied "
            f"(missing e.g. {sorted(missing)[:3]})"
        )

    stance_bins = _stance_bins(frame, bin_width)
    mindshare_bins = _mindshare_bins(frame, bin_width, len(universe), len(supplied))

    elapsed = time.time() - start_time
    logger.info(
        f"Aggregated {len(records)} records into {len(stance_bins)} stance bins "
        f"and {len(mindshare_bins)} mindshare bins in {elapsed:.2f}s"
    )
    return AggregationResult(
        stance_bins=stance_bins,
        mindshare_bins=mindshare_bins,
        complete=not missing,
    )
