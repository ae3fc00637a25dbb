from datetime import datetime, timezone

import pytest

from stance_engine.config import Lexicon
from stance_engine.models import ContentTopicLink, RawContentItem, Topic
from stance_engine.stance_scorer import StanceScorer

T0 = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


def _item(text: str) -> RawContentItem:
    return RawContentItem(id="c1", voice_id="v1", platform="youtube", timestamp=T0, text=text)


def _link(confidence: float = 1.0, keywords=("immigration",)) -> ContentTopicLink:
    return ContentTopicLink(
        content_id="c1",
        topic_id="immigration",
        confidence=confidence,
        matched_keywords=keywords,
    )


def test_supportive_sentence_scores_positive() -> None:
    record = StanceScorer().score(_item("I strongly support immigration."), _link())

    assert record is not None
    assert record.stance == pytest.approx(1.0)
    assert 0.15 <= record.confidence <= 1.0
    assert record.voice_id == "v1"
    assert record.topic_id == "immigration"
    assert record.platform == "youtube"
    assert record.evidence == ("I strongly support immigration.",)


def test_opposing_sentence_scores_negative() -> None:
    record = StanceScorer().score(_item("I oppose immigration."), _link())
    assert record is not None
    assert record.stance == pytest.approx(-1.0)


def test_negation_flips_polarity() -> None:
    record = StanceScorer().score(_item("I do not support immigration."), _link())
    assert record is not None
    assert record.stance < 0


def test_multiword_anti_phrase_beats_single_pro_word() -> None:
    """``must not`` is one anti phrase, not the pro word ``must``."""
    record = StanceScorer().score(_item("We must not expand immigration."), _link())
    assert record is not None
    assert record.stance == pytest.approx(-1.0)


def test_intensifier_scales_weak_signal() -> None:
    record = StanceScorer().score(_item("I slightly support immigration."), _link())
    assert record is not None
    assert record.stance == pytest.approx(0.5)


def test_balanced_polarity_is_observed_neutral() -> None:
    """Equal pro and anti weight gives 0.0, not None."""
    record = StanceScorer().score(_item("I support immigration but it is wrong."), _link())
    assert record is not None
    assert record.stance == 0.0


def test_only_sentences_mentioning_the_topic_are_scored() -> None:
    text = "Immigration is on the agenda tonight. Everything else is terrible and wrong."
    assert StanceScorer().score(_item(text), _link()) is None


def test_no_polarity_tokens_returns_none() -> None:
    assert StanceScorer().score(_item("Immigration numbers were published."), _link()) is None


def test_low_confidence_is_filtered() -> None:
    scorer = StanceScorer(min_confidence=0.99)
    assert scorer.score(_item("I support immigration."), _link(confidence=0.5)) is None


def test_lower_link_confidence_lowers_record_confidence() -> None:
    scorer = StanceScorer()
    strong = scorer.score(_item("I support immigration."), _link(confidence=1.0))
    weak = scorer.score(_item("I support immigration."), _link(confidence=0.2))
    assert strong is not None and weak is not None
    assert weak.confidence < strong.confidence


def test_lexicon_is_replaceable() -> None:
    scorer = StanceScorer(lexicon=Lexicon(pro=("fab",), anti=("meh",)))
    record = scorer.score(_item("Immigration is fab."), _link())
    assert record is not None
    assert record.stance == pytest.approx(1.0)
    assert scorer.score(_item("I support immigration."), _link()) is None


def test_falls_back_to_topic_keywords_when_link_has_none() -> None:
    topic = Topic(topic_id="immigration", label="Immigration", seed_keywords=["immigration", "border"])
    scorer = StanceScorer(topics=[topic])
    record = scorer.score(_item("The border deal is good."), _link(keywords=()))
    assert record is not None
    assert record.stance > 0


def test_score_all_skips_links_without_items() -> None:
    scorer = StanceScorer()
    item = _item("I support immigration.")
    orphan = ContentTopicLink(content_id="missing", topic_id="immigration", confidence=1.0)
    records = scorer.score_all({item.id: item}, [_link(), orphan])
    assert [r.content_id for r in records] == ["c1"]
