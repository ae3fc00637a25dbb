"""Keyword-burst explanations for stance flips."""
from __future__ import annotations

import logging
import re
from collections import Counter, defaultdict
from datetime import timedelta
from typing import Dict, List, Sequence, Set, Tuple

from .models import FlipExplanation, KeywordBurst, RawContentItem, StanceFlipEvent

WORD_RE = re.compile(r"[a-z]+")
MIN_TOKEN_LENGTH = 3

STOP_WORDS = {
    "the", "and", "but", "for", "with", "this", "that", "these", "those", "from",
    "are", "was", "were", "been", "being", "have", "has", "had", "does", "did",
    "will", "would", "could", "should", "can", "may", "might", "must", "shall",
    "its", "his", "her", "hers", "their", "theirs", "our", "ours", "your", "yours",
    "they", "them", "she", "him", "who", "whom", "what", "which", "when", "where",
    "why", "how", "all", "any", "some", "more", "most", "other", "such", "than",
    "then", "there", "here", "into", "onto", "about", "over", "under", "again",
    "just", "also", "very", "not", "now", "out", "off", "own", "same", "too",
    "only", "once", "each", "few", "both", "because", "while", "until", "after",
    "before", "above", "below", "between", "through", "during", "you", "one",
    "get", "got", "like", "really", "don", "doesn", "isn", "aren", "won", "let",
    "http", "https", "www", "com",
}


def content_tokens(text: str) -> List[str]:
    """Lower-case word tokens of *text* with stop words and short words removed."""
    return [
        token
        for token in WORD_RE.findall(text.lower())
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    ]


class BurstExplainer:
    """Explain a stance flip by the keywords that spiked after it."""

    def __init__(
        self,
        window: timedelta = timedelta(hours=24),
        top_n: int = 5,
        content_window: timedelta = timedelta(hours=48),
        top_content: int = 5,
    ):
        """Initialize the explainer.

        Args:
            window: length of the pre- and post-flip windows
            top_n: maximum number of keywords per explanation
            content_window: distance either side of the flip searched for top content
            top_content: maximum number of content ids listed by engagement
        """
        self.window = window
        self.top_n = top_n
        self.content_window = content_window
        self.top_content = top_content
        self.logger = logging.getLogger(__name__)

    def explain(self, flip: StanceFlipEvent, window_content: Sequence[RawContentItem]) -> FlipExplanation:
        """Build a :class:`FlipExplanation` for *flip* from *window_content*.

        Only content written by the flip's voice counts. An empty window gives
        an explanation with no keywords.
        """
        t0 = flip.flipped_at
        pre_counts: Counter[str] = Counter()
        post_counts: Counter[str] = Counter()
        content_ids: Dict[str, Set[str]] = defaultdict(set)

        for item in window_content:
            if item.voice_id != flip.voice_id:
                continue
            if t0 - self.window <= item.timestamp < t0:
                bucket = pre_counts
            elif t0 <= item.timestamp < t0 + self.window:
                bucket = post_counts
            else:
                continue
            tokens = content_tokens(item.full_text)
            bucket.update(tokens)
            if bucket is post_counts:
                for token in tokens:
                    content_ids[token].add(item.id)

        ranked = sorted(
            (
                (post_counts[token] - pre_counts[token], token)
                for token in post_counts
                if post_counts[token] > pre_counts[token]
            ),
            key=lambda pair: (-pair[0], pair[1]),
        )

        keywords = [
            KeywordBurst(
                keyword=token,
                pre_count=pre_counts[token],
                post_count=post_counts[token],
                delta=delta,
                content_ids=tuple(sorted(content_ids[token])),
            )
            for delta, token in ranked[: self.top_n]
        ]

        return FlipExplanation(
            flip_event_id=flip.event_id,
            keywords=keywords,
            top_content_ids=self._top_content_ids(flip, window_content),
            narrative_summary=narrative_summary(flip, keywords),
        )

    def _top_content_ids(self, flip: StanceFlipEvent, window_content: Sequence[RawContentItem]) -> Tuple[str, ...]:
        """Ids of the voice's most-engaged items within ``content_window`` of the flip.

        Engagement is views plus likes; ties go to the lower id.
        """
        nearby = [
            item
            for item in window_content
            if item.voice_id == flip.voice_id
            and abs(item.timestamp - flip.flipped_at) <= self.content_window
        ]
        nearby.sort(key=lambda item: (-item.metrics.engagement, item.id))
        return tuple(item.id for item in nearby[: self.top_content])

    def explain_all(
        self,
        flips: Sequence[StanceFlipEvent],
        content: Sequence[RawContentItem],
    ) -> List[FlipExplanation]:
        explanations = [self.explain(flip, content) for flip in flips]
        self.logger.info(f"Explained {len(explanations)} flips")
        return explanations


def narrative_summary(flip: StanceFlipEvent, keywords: Sequence[KeywordBurst]) -> str:
    """One-sentence, human-readable account of *flip*."""
    direction = "more supportive" if flip.direction == "positive" else "more critical"
    parts = [
        f"{flip.voice_id} turned {direction} on {flip.topic_id} "
        f"({flip.stance_before:+.2f} -> {flip.stance_after:+.2f})."
    ]
    if keywords:
        parts.append(f"Rising terms: {', '.join(k.keyword for k in keywords[:3])}.")
    if flip.delta_mindshare is not None and abs(flip.delta_mindshare) >= 0.1:
        change = "gained" if flip.delta_mindshare > 0 else "lost"
        parts.append(f"Mindshare {change} {abs(flip.delta_mindshare) * 100:.0f} points.")
    return " ".join(parts)
