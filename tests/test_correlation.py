from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from stance_engine.correlation import correlate_flips, correlate_stance_mindshare, cross_correlate
from stance_engine.flip_detector import detect_flips
from stance_engine.models import MindshareBin, StanceBin

HOUR = timedelta(hours=1)
T0 = datetime(2024, 6, 1, tzinfo=timezone.utc)

STANCES = [1.0, -0.5, 0.2, 0.9, -1.0, 0.4, -0.3, 0.6]


def _stance_bin(hour: int, stance: float, voice_id: str = "v", topic_id: str = "t") -> StanceBin:
    return StanceBin(
        voice_id=voice_id,
        topic_id=topic_id,
        bin_start=T0 + hour * HOUR,
        bin_width=HOUR,
        mean_stance=stance,
        count=1,
        weighted_stance=stance,
        mean_confidence=0.5,
        content_ids=(f"c{hour}",),
    )


def _share_bin(hour: int, share: float, voice_id: str = "v", topic_id: str = "t") -> MindshareBin:
    return MindshareBin(
        voice_id=voice_id,
        topic_id=topic_id,
        bin_start=T0 + hour * HOUR,
        bin_width=HOUR,
        volume=1,
        share=share,
        complete=True,
    )


def test_mindshare_trailing_stance_is_found_at_positive_lag() -> None:
    """Mindshare two bins after each stance bin mirrors that stance."""
    stance_bins = [_stance_bin(h, s) for h, s in enumerate(STANCES)]
    share_bins = [_share_bin(h + 2, (s + 1) / 2) for h, s in enumerate(STANCES)]

    result = correlate_stance_mindshare(stance_bins, share_bins, "v", "t", max_lag=3)

    assert result is not None
    assert result.lag_bins == 2
    assert result.lag_hours == pytest.approx(2.0)
    assert result.correlation == pytest.approx(1.0)
    assert result.samples == len(STANCES)


def test_too_few_bins_gives_none() -> None:
    stance_bins = [_stance_bin(0, 0.5), _stance_bin(1, -0.5)]
    share_bins = [_share_bin(0, 0.3), _share_bin(1, 0.7)]
    assert correlate_stance_mindshare(stance_bins, share_bins, "v", "t") is None
    assert correlate_stance_mindshare(stance_bins, share_bins, "other", "t") is None


def test_stance_gaps_are_not_filled() -> None:
    index = pd.date_range(T0, periods=5, freq=HOUR)
    stance = pd.Series([1.0, None, -1.0, None, 0.5], index=index)
    share = pd.Series([0.9, 0.0, 0.1, 0.0, 0.6], index=index)

    lag, correlation, samples = cross_correlate(stance, share, max_lag=0)
    assert (lag, samples) == (0, 3)
    assert correlation == pytest.approx(stance.dropna().corr(share[stance.notna()]))


def test_constant_series_is_not_measurable() -> None:
    index = pd.date_range(T0, periods=4, freq=HOUR)
    stance = pd.Series([0.5, 0.5, 0.5, 0.5], index=index)
    share = pd.Series([0.1, 0.4, 0.2, 0.9], index=index)
    assert cross_correlate(stance, share, max_lag=1) == (0, 0.0, 0)


def test_correlate_flips_covers_each_flipped_pair_once() -> None:
    stance_bins = [_stance_bin(h, s) for h, s in enumerate(STANCES)]
    stance_bins += [_stance_bin(h, 0.1, topic_id="calm") for h in range(4)]
    share_bins = [_share_bin(h, (s + 1) / 2) for h, s in enumerate(STANCES)]

    flips = detect_flips(stance_bins, min_magnitude=0.5)
    assert len(flips) > 1

    correlations = correlate_flips(flips, stance_bins, share_bins, max_lag=2)
    assert [(c.voice_id, c.topic_id) for c in correlations] == [("v", "t")]
    assert correlations[0].lag_bins == 0
    assert correlations[0].correlation == pytest.approx(1.0)
