"""Lagged correlation between a voice's stance and its mindshare on a topic.

Stance is only known where a bin exists; it is never filled in. Mindshare is
zero in bins where the voice produced nothing on the topic, so the share
series is densified with zeros across the covered range.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .models import MindshareBin, StanceBin, StanceFlipEvent, StanceMindshareCorrelation

logger = logging.getLogger(__name__)

MIN_SAMPLES = 3


def cross_correlate(
    stance: pd.Series,
    share: pd.Series,
    max_lag: int,
    min_samples: int = MIN_SAMPLES,
) -> Tuple[int, float, int]:
    """Return ``(lag, correlation, samples)`` with the strongest |correlation|.

    Both series must share a regular index. ``stance[t]`` is paired with
    ``share[t + lag]`` for every lag in ``[-max_lag, max_lag]``; pairs with a
    missing value are dropped. Lags with fewer than *min_samples* pairs or a
    constant side are skipped. Smaller |lag| wins ties. ``(0, 0.0, 0)`` means
    no lag was measurable.
    """
    best: Optional[Tuple[int, float, int]] = None
    for lag in sorted(range(-max_lag, max_lag + 1), key=lambda value: (abs(value), value)):
        pairs = pd.concat([stance, share.shift(-lag)], axis=1).dropna()
        if len(pairs) < min_samples:
            continue
        left, right = pairs.iloc[:, 0], pairs.iloc[:, 1]
        if left.std() == 0 or right.std() == 0:
            continue
        corr = float(left.corr(right))
        if np.isnan(corr):
            continue
        if best is None or abs(corr) > abs(best[1]):
            best = (lag, float(np.clip(corr, -1.0, 1.0)), len(pairs))
    return best or (0, 0.0, 0)


def _series(
    stance_bins: Sequence[StanceBin],
    mindshare_bins: Sequence[MindshareBin],
    voice_id: str,
    topic_id: str,
) -> Optional[Tuple[pd.Series, pd.Series, timedelta]]:
    stance = {b.bin_start: b.weighted_stance for b in stance_bins if (b.voice_id, b.topic_id) == (voice_id, topic_id)}
    widths = {b.bin_width for b in stance_bins if (b.voice_id, b.topic_id) == (voice_id, topic_id)}
    share = {m.bin_start: m.share for m in mindshare_bins if (m.voice_id, m.topic_id) == (voice_id, topic_id)}
    if not stance or len(widths) != 1:
        return None

    starts = list(stance) + list(share)
    bin_width = widths.pop()
    index = pd.date_range(start=min(starts), end=max(starts), freq=bin_width)
    stance_series = pd.Series(stance, dtype=float).reindex(index)
    share_series = pd.Series(share, dtype=float).reindex(index).fillna(0.0)
    return stance_series, share_series, bin_width


def correlate_stance_mindshare(
    stance_bins: Sequence[StanceBin],
    mindshare_bins: Sequence[MindshareBin],
    voice_id: str,
    topic_id: str,
    max_lag: int = 6,
) -> StanceMindshareCorrelation | None:
    """Correlate one (voice, topic) stance series with its mindshare series.

    Returns ``None`` when the series is too short or flat to measure.
    """
    series = _series(stance_bins, mindshare_bins, voice_id, topic_id)
    if series is None:
        return None
    stance, share, bin_width = series

    lag, correlation, samples = cross_correlate(stance, share, max_lag)
    if samples == 0:
        return None
    return StanceMindshareCorrelation(
        voice_id=voice_id,
        topic_id=topic_id,
        lag_bins=lag,
        lag_hours=lag * bin_width.total_seconds() / 3600,
        correlation=correlation,
        samples=samples,
    )


def correlate_flips(
    flips: Sequence[StanceFlipEvent],
    stance_bins: Sequence[StanceBin],
    mindshare_bins: Sequence[MindshareBin],
    max_lag: int = 6,
) -> List[StanceMindshareCorrelation]:
    """Correlate every (voice, topic) pair that flipped, ordered by voice then topic."""
    pairs = sorted({(f.voice_id, f.topic_id) for f in flips})
    correlations = []
    for voice_id, topic_id in pairs:
        result = correlate_stance_mindshare(stance_bins, mindshare_bins, voice_id, topic_id, max_lag)
        if result is not None:
            correlations.append(result)
    logger.info(f"Correlated stance and mindshare for {len(correlations)} of {len(pairs)} flipped pairs")
    return correlations
