"""Lexicon-based stance scoring restricted to sentences that mention the topic.

Whole-document sentiment mixes a voice's general tone with its position on the
topic, so only sentences containing one of the link's matched keywords are
scored.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import Lexicon
from .models import ContentTopicLink, RawContentItem, StanceRecord, Topic
from .topic_linker import SUBSTRING, matching_keywords

logger = logging.getLogger(__name__)

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+|\n+")
TOKEN_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")

NEGATION_SCOPE = 3  # tokens a negation stays active for

_NEGATION = "negation"
_INTENSIFIER = "intensifier"
_PRO = "pro"
_ANTI = "anti"


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in SENTENCE_SPLIT.split(text) if s and s.strip()]


def tokenize(text: str) -> List[str]:
    return TOKEN_RE.findall(text.lower().replace("’", "'"))


class StanceScorer:
    """Score the stance of a content item toward a linked topic."""

    def __init__(
        self,
        lexicon: Lexicon | None = None,
        min_confidence: float = 0.15,
        topics: Sequence[Topic] | None = None,
        match_mode: str = SUBSTRING,
    ):
        self.lexicon = lexicon or Lexicon()
        self.min_confidence = min_confidence
        self.match_mode = match_mode
        self._topic_keywords: Dict[str, Tuple[str, ...]] = {
            t.topic_id: t.seed_keywords for t in (topics or ())
        }
        self._phrases = self._build_phrase_table(self.lexicon)
        self._max_phrase_len = max((len(p) for p in self._phrases), default=1)

    @staticmethod
    def _build_phrase_table(lexicon: Lexicon) -> Dict[Tuple[str, ...], Tuple[str, float]]:
        """Map token tuples to (kind, value); later kinds win on duplicates."""
        table: Dict[Tuple[str, ...], Tuple[str, float]] = {}
        for term in lexicon.negations:
            table[tuple(tokenize(term))] = (_NEGATION, 0.0)
        for term, factor in lexicon.intensifiers.items():
            table[tuple(tokenize(term))] = (_INTENSIFIER, factor)
        for term in lexicon.pro:
            table[tuple(tokenize(term))] = (_PRO, 1.0)
        for term in lexicon.anti:
            table[tuple(tokenize(term))] = (_ANTI, -1.0)
        table.pop((), None)
        return table

    def _lookup(self, tokens: List[str], i: int) -> Tuple[int, Optional[Tuple[str, float]]]:
        """Return (length, entry) of the longest lexicon phrase starting at *i*."""
        for length in range(min(self._max_phrase_len, len(tokens) - i), 0, -1):
            entry = self._phrases.get(tuple(tokens[i:i + length]))
            if entry is not None:
                return length, entry
        return 1, None

    def _score_tokens(self, tokens: List[str]) -> List[float]:
        """Return the signed contribution of every polarity term in *tokens*."""
        contributions: List[float] = []
        negation_left = 0
        multiplier = 1.0
        i = 0
        while i < len(tokens):
            length, entry = self._lookup(tokens, i)
            i += length
            if entry is None:
                negation_left = max(0, negation_left - 1)
                continue

            kind, value = entry
            if kind == _NEGATION:
                negation_left = NEGATION_SCOPE
            elif kind == _INTENSIFIER:
                multiplier = value
            else:
                sign = -value if negation_left else value
                contributions.append(sign * multiplier)
                negation_left = 0
                multiplier = 1.0
        return contributions

    def _keywords_for(self, link: ContentTopicLink) -> Tuple[str, ...]:
        return link.matched_keywords or self._topic_keywords.get(link.topic_id, ())

    def score(self, item: RawContentItem, link: ContentTopicLink) -> StanceRecord | None:
        """Return the :class:`StanceRecord` for *item* on ``link.topic_id``.

        ``None`` means the pair was filtered out (nothing scorable near the
        topic mention, or confidence under ``min_confidence``); it is not an
        error.
        """
        keywords = self._keywords_for(link)
        if not keywords:
            return None

        net = 0.0
        mass = 0.0
        span_tokens = 0
        evidence: List[str] = []
        for sentence in split_sentences(item.full_text):
            if not matching_keywords(sentence.lower(), keywords, self.match_mode):
                continue
            tokens = tokenize(sentence)
            span_tokens += len(tokens)
            contributions = self._score_tokens(tokens)
            if contributions:
                net += sum(contributions)
                mass += sum(abs(c) for c in contributions)
                if len(evidence) < 3:
                    evidence.append(sentence)

        if mass == 0:
            return None

        stance = 0.0 if net == 0 else max(-1.0, min(1.0, net / max(mass, 1.0)))
        signal_strength = min(1.0, mass / 3)
        length_factor = min(1.0, span_tokens / 20)
        link_factor = 0.5 + 0.5 * link.confidence
        confidence = link_factor * (0.3 + 0.5 * signal_strength + 0.2 * length_factor)
        confidence = max(0.0, min(1.0, confidence))

        if confidence < self.min_confidence:
            logger.debug(f"Dropping {item.id}/{link.topic_id}: confidence {confidence:.3f} below minimum")
            return None

        return StanceRecord(
            voice_id=item.voice_id,
            topic_id=link.topic_id,
            content_id=item.id,
            timestamp=item.timestamp,
            stance=stance,
            confidence=confidence,
            platform=item.platform,
            evidence=tuple(evidence),
        )

    def score_all(
        self,
        items: Mapping[str, RawContentItem],
        links: Sequence[ContentTopicLink],
    ) -> List[StanceRecord]:
        """Score every link whose content id is present in *items*."""
        records = []
        for link in links:
            item = items.get(link.content_id)
            if item is None:
                continue
            record = self.score(item, link)
            if record is not None:
                records.append(record)
        logger.info(f"Scored {len(records)} stance records from {len(links)} links")
        return records
