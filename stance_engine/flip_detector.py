"""Detection of stance flips between chronologically adjacent stance bins."""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Sequence, Tuple

from .config import ConfigurationError
from .models import MindshareBin, StanceBin, StanceFlipEvent

logger = logging.getLogger(__name__)


def _series_by_voice_topic(bins: Sequence[StanceBin]) -> Dict[Tuple[str, str], List[StanceBin]]:
    series: Dict[Tuple[str, str], List[StanceBin]] = defaultdict(list)
    for b in bins:
        series[(b.voice_id, b.topic_id)].append(b)
    for key in series:
        series[key].sort(key=lambda b: b.bin_start)
    return series


def _is_adjacent(before: StanceBin, after: StanceBin) -> bool:
    # A missing bin in between means a data gap: never compared, never interpolated.
    return before.bin_width == after.bin_width and after.bin_start - before.bin_start == before.bin_width


def _flip_event(before: StanceBin, after: StanceBin, magnitude: float) -> StanceFlipEvent:
    return StanceFlipEvent(
        event_id=f"flip|{after.voice_id}|{after.topic_id}|{after.bin_start.strftime('%Y%m%dT%H%M%SZ')}",
        voice_id=after.voice_id,
        topic_id=after.topic_id,
        flipped_at=after.bin_start,
        stance_before=before.weighted_stance,
        stance_after=after.weighted_stance,
        magnitude=magnitude,
        supporting_bin_ids=(before.bin_id, after.bin_id),
        direction="positive" if after.weighted_stance > before.weighted_stance else "negative",
        confidence=(before.mean_confidence + after.mean_confidence) / 2,
        receipts_before=before.content_ids,
        receipts_after=after.content_ids,
    )


def detect_flips(
    bins: Sequence[StanceBin],
    min_magnitude: float,
    min_items: int = 1,
) -> List[StanceFlipEvent]:
    """Return one flip per adjacent bin pair whose stance moved by at least *min_magnitude*.

    Each (voice, topic) series is scanned independently; flips on different
    topics at the same moment do not suppress each other.
    """
    if min_magnitude <= 0:
        raise ConfigurationError(f"flip threshold must be positive, got {min_magnitude}")
    if min_items < 1:
        raise ConfigurationError(f"min_items must be at least 1, got {min_items}")

    flips: List[StanceFlipEvent] = []
    for series in _series_by_voice_topic(bins).values():
        for before, after in zip(series, series[1:]):
            if not _is_adjacent(before, after):
                continue
            if before.count < min_items or after.count < min_items:
                continue
            magnitude = abs(after.weighted_stance - before.weighted_stance)
            if magnitude >= min_magnitude:
                flips.append(_flip_event(before, after, magnitude))

    flips.sort(key=lambda f: (f.flipped_at, f.voice_id, f.topic_id))
    logger.info(f"Detected {len(flips)} stance flips across {len(bins)} bins (threshold {min_magnitude})")
    return flips


def attach_mindshare(
    flips: Sequence[StanceFlipEvent],
    mindshare_bins: Sequence[MindshareBin],
) -> List[StanceFlipEvent]:
    """Return copies of *flips* with ``delta_mindshare`` set.

    The delta is the voice's share on the flip topic in the bin after the flip
    minus its share in the bin before; it stays ``None`` when either bin has
    no mindshare entry.
    """
    shares = {(m.voice_id, m.topic_id, m.bin_start): m for m in mindshare_bins}

    annotated = []
    for flip in flips:
        after = shares.get((flip.voice_id, flip.topic_id, flip.flipped_at))
        before = None
        if after is not None:
            before = shares.get((flip.voice_id, flip.topic_id, flip.flipped_at - after.bin_width))
        if after is None or before is None:
            annotated.append(flip)
            continue
        annotated.append(flip.model_copy(update={"delta_mindshare": after.share - before.share}))
    return annotated
