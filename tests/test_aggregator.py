from collections import defaultdict
from datetime import datetime, timedelta, timezone

import pytest

from stance_engine.aggregator import aggregate, bin_start_for
from stance_engine.config import ConfigurationError
from stance_engine.models import StanceRecord

HOUR = timedelta(hours=1)
DAY0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _record(
    content_id: str,
    minutes: int,
    stance: float = 0.5,
    confidence: float = 0.5,
    voice_id: str = "v1",
    topic_id: str = "t1",
    platform: str = "x",
) -> StanceRecord:
    return StanceRecord(
        voice_id=voice_id,
        topic_id=topic_id,
        content_id=content_id,
        timestamp=DAY0 + timedelta(minutes=minutes),
        stance=stance,
        confidence=confidence,
        platform=platform,
    )


def test_bins_align_to_epoch_not_first_record() -> None:
    assert bin_start_for(DAY0 + timedelta(hours=11, minutes=30), timedelta(hours=2)) == DAY0 + timedelta(hours=10)
    assert bin_start_for(DAY0 + timedelta(hours=11, minutes=30), timedelta(hours=3)) == DAY0 + timedelta(hours=9)

    result = aggregate([_record("a", 10 * 60 + 45)], timedelta(hours=2))
    assert result.stance_bins[0].bin_start == DAY0 + timedelta(hours=10)


def test_count_matches_records_in_half_open_interval() -> None:
    records = [
        _record("a", 10 * 60),       # 10:00 -> [10, 11)
        _record("b", 10 * 60 + 59),  # 10:59 -> [10, 11)
        _record("c", 11 * 60),       # 11:00 -> [11, 12)
    ]
    bins = aggregate(records, HOUR).stance_bins

    counts = {b.bin_start: b.count for b in bins}
    assert counts == {DAY0 + timedelta(hours=10): 2, DAY0 + timedelta(hours=11): 1}
    for b in bins:
        in_bin = [r for r in records if b.bin_start <= r.timestamp < b.bin_end]
        assert b.count == len(in_bin)
        assert b.content_ids == tuple(sorted(r.content_id for r in in_bin))


def test_bins_are_sparse() -> None:
    records = [_record("a", 0), _record("b", 3 * 60)]
    bins = aggregate(records, HOUR).stance_bins
    assert [b.bin_start for b in bins] == [DAY0, DAY0 + timedelta(hours=3)]


def test_weighted_mean_uses_confidence() -> None:
    records = [_record("a", 5, stance=1.0, confidence=0.75), _record("b", 10, stance=-1.0, confidence=0.25)]
    (b,) = aggregate(records, HOUR).stance_bins
    assert b.mean_stance == pytest.approx(0.0)
    assert b.weighted_stance == pytest.approx(0.5)
    assert b.mean_confidence == pytest.approx(0.5)


def test_zero_confidence_mass_falls_back_to_plain_mean() -> None:
    records = [
        _record("a", 1, stance=0.2, confidence=0.0),
        _record("b", 2, stance=-0.2, confidence=0.0),
        _record("c", 3, stance=0.4, confidence=0.0),
    ]
    (b,) = aggregate(records, HOUR).stance_bins
    assert b.count == 3
    assert b.mean_stance == pytest.approx(0.4 / 3)
    assert b.weighted_stance == pytest.approx(0.1333333333)


def test_aggregate_is_idempotent() -> None:
    records = [
        _record("a", 5, stance=0.3, confidence=0.9),
        _record("b", 65, stance=-0.7, confidence=0.4, voice_id="v2"),
        _record("c", 70, stance=0.1, confidence=0.6, topic_id="t2"),
        _record("d", 200, stance=0.9, confidence=0.2, voice_id="v3"),
    ]
    first = aggregate(records, HOUR, voice_universe={"v1", "v2", "v3"})
    second = aggregate(records, HOUR, voice_universe={"v1", "v2", "v3"})
    assert first == second
    assert first.stance_bins == second.stance_bins
    assert first.mindshare_bins == second.mindshare_bins


def test_complete_mindshare_sums_to_one() -> None:
    records = [
        _record("a1", 5, voice_id="v1"),
        _record("a2", 15, voice_id="v1"),
        _record("a3", 25, voice_id="v1"),
        _record("b1", 35, voice_id="v2"),
        _record("c1", 45, voice_id="v3"),
        _record("c2", 50, voice_id="v3", topic_id="t2"),
        _record("c3", 130, voice_id="v3"),
    ]
    result = aggregate(records, HOUR, voice_universe={"v1", "v2", "v3"})

    assert result.complete is True
    totals = defaultdict(float)
    for m in result.mindshare_bins:
        assert m.complete is True
        totals[(m.topic_id, m.bin_start)] += m.share
    for total in totals.values():
        assert total == pytest.approx(1.0, abs=1e-9)

    shares = {(m.voice_id, m.topic_id, m.bin_start): m.share for m in result.mindshare_bins}
    assert shares[("v1", "t1", DAY0)] == pytest.approx(0.6)
    assert shares[("v3", "t1", DAY0 + 2 * HOUR)] == pytest.approx(1.0)


def test_partial_voice_universe_is_flagged_incomplete() -> None:
    records = [_record("a1", 5, voice_id="v1"), _record("a2", 10, voice_id="v1")]
    result = aggregate(records, HOUR, voice_universe={"v1", "v2", "v3"})

    assert result.complete is False
    (m,) = result.mindshare_bins
    assert m.complete is False
    assert m.volume == 2
    assert m.share == pytest.approx(1 / 3)
    assert sum(b.share for b in result.mindshare_bins) != pytest.approx(1.0)


def test_supplied_voices_without_records_still_count_as_complete() -> None:
    records = [_record("a1", 5, voice_id="v1")]
    result = aggregate(records, HOUR, voice_universe={"v1", "v2"}, supplied_voices={"v1", "v2"})
    assert result.complete is True
    assert result.mindshare_bins[0].share == pytest.approx(1.0)


def test_mindshare_volume_counts_distinct_items_per_platform() -> None:
    records = [
        _record("a1", 5, platform="x"),
        _record("a2", 10, platform="youtube"),
        _record("a3", 15, platform="youtube"),
        _record("a3", 15, platform="youtube", topic_id="t2"),
    ]
    result = aggregate(records, HOUR)
    t1 = next(m for m in result.mindshare_bins if m.topic_id == "t1")
    assert t1.volume == 3
    assert t1.platform_volumes == {"x": 1, "youtube": 2}


@pytest.mark.parametrize("width", [timedelta(0), timedelta(hours=-1)])
def test_non_positive_bin_width_is_a_configuration_error(width) -> None:
    with pytest.raises(ConfigurationError):
        aggregate([_record("a", 1)], width)


def test_empty_input_gives_empty_complete_result() -> None:
    result = aggregate([], HOUR)
    assert result.stance_bins == []
    assert result.mindshare_bins == []
    assert result.complete is True
