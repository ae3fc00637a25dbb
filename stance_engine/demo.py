"""Synthetic demo dataset.

Builds a small fictional catalog and a reproducible stream of content items
with a few injected stance flips, each followed by a burst of new terms. Useful
for trying the pipeline end to end without an ingest adapter.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .catalog import Catalog, load_catalog
from .models import ContentMetrics, RawContentItem, Topic

logger = logging.getLogger(__name__)

DEMO_START = datetime(2024, 1, 1, tzinfo=timezone.utc)

DEMO_VOICES = [
    {"voice_id": "ava-reyes", "display_name": "Ava Reyes", "platform": "youtube", "category": "politics"},
    {"voice_id": "ben-okafor", "display_name": "Ben Okafor", "platform": "x", "category": "media"},
    {"voice_id": "chloe-martin", "display_name": "Chloe Martin", "platform": "podcast", "category": "culture"},
    {"voice_id": "dario-voss", "display_name": "Dario Voss", "platform": "substack", "category": "tech"},
    {"voice_id": "elena-brandt", "display_name": "Elena Brandt", "platform": "x", "category": "politics"},
    {"voice_id": "felix-nakamura", "display_name": "Felix Nakamura", "platform": "youtube", "category": "tech"},
    {"voice_id": "grace-oduya", "display_name": "Grace Oduya", "platform": "podcast", "category": "media"},
    {"voice_id": "hugo-lindqvist", "display_name": "Hugo Lindqvist", "platform": "rumble", "category": "culture"},
]

DEMO_TOPICS = [
    {
        "topic_id": "immigration",
        "label": "Immigration Policy",
        "seed_keywords": ["immigration", "border", "migrant", "asylum", "deportation", "wall"],
        "category": "politics",
    },
    {
        "topic_id": "ai-regulation",
        "label": "AI Regulation",
        "seed_keywords": ["artificial intelligence", "regulation", "openai", "chatgpt", "safety"],
        "category": "tech",
    },
    {
        "topic_id": "climate-policy",
        "label": "Climate Policy",
        "seed_keywords": ["climate", "carbon", "renewable", "emissions"],
        "category": "politics",
    },
    {
        "topic_id": "crypto",
        "label": "Cryptocurrency",
        "seed_keywords": ["crypto", "bitcoin", "ethereum", "blockchain"],
        "category": "tech",
    },
    {
        "topic_id": "free-speech",
        "label": "Free Speech",
        "seed_keywords": ["free speech", "censorship", "first amendment", "moderation"],
        "category": "culture",
    },
    {
        "topic_id": "economy",
        "label": "Economic Policy",
        "seed_keywords": ["economy", "inflation", "recession", "jobs"],
        "category": "economy",
    },
]


@dataclass(frozen=True)
class FlipScenario:
    """A stance change injected into the demo stream."""

    voice_id: str
    topic_id: str
    flip_day: int
    stance_before: float
    stance_after: float
    burst_terms: Tuple[str, ...]


FLIP_SCENARIOS = (
    FlipScenario("ava-reyes", "immigration", 6, 0.7, -0.5, ("caravan", "testimony", "shelters")),
    FlipScenario("dario-voss", "ai-regulation", 9, -0.6, 0.5, ("licensing", "senate", "watermarks")),
    FlipScenario("hugo-lindqvist", "crypto", 5, -0.4, 0.9, ("etf", "approval", "rally")),
)

PRO_TEMPLATES = (
    "I support {kw} and always will.",
    "Honestly {kw} is the right call.",
    "We need {kw}, it is important.",
    "I strongly endorse {kw}.",
)

ANTI_TEMPLATES = (
    "I oppose {kw} completely.",
    "Frankly {kw} is a dangerous idea.",
    "The push on {kw} is wrong for this country.",
    "I reject {kw} outright.",
)

FILLER = (
    "Thanks for tuning in today.",
    "Link in the description.",
    "More on this tomorrow.",
)

SENTENCES_PER_POST = 3


def demo_catalog() -> Catalog:
    """Return the validated fictional demo catalog."""
    return load_catalog(DEMO_VOICES, DEMO_TOPICS)


def _pick(rng: np.random.Generator, options: Sequence[str]) -> str:
    return options[int(rng.integers(len(options)))]


def _compose(
    rng: np.random.Generator,
    topic: Topic,
    stance: float,
    burst_terms: Sequence[str] = (),
) -> Tuple[str | None, str]:
    """Write a (title, body) post whose pro/anti sentence mix tracks *stance*.

    Burst terms show up three times (title plus two sentences) so they stand
    out against the template vocabulary.
    """
    stance = float(np.clip(stance, -1.0, 1.0))
    n_pro = int(round((stance + 1) / 2 * SENTENCES_PER_POST))
    sentences = []
    for i in range(SENTENCES_PER_POST):
        template = _pick(rng, PRO_TEMPLATES if i < n_pro else ANTI_TEMPLATES)
        sentences.append(template.format(kw=_pick(rng, topic.seed_keywords)))
    rng.shuffle(sentences)

    title = None
    if burst_terms:
        title = ", ".join(term.title() for term in burst_terms)
        listed = ", ".join(burst_terms[:-1]) + f" and {burst_terms[-1]}" if len(burst_terms) > 1 else burst_terms[0]
        sentences.append(f"Everyone is suddenly talking about {listed}.")
        sentences.append(f"{' '.join(burst_terms).capitalize()}: full breakdown below.")
    sentences.append(_pick(rng, FILLER))
    return title, " ".join(sentences)


def _item(
    rng: np.random.Generator,
    voice: Dict[str, str],
    day: int,
    n: int,
    start: datetime,
    post: Tuple[str | None, str],
) -> RawContentItem:
    title, text = post
    offset = timedelta(days=day, hours=int(rng.integers(0, 24)), minutes=int(rng.integers(0, 60)))
    return RawContentItem(
        id=f"{voice['voice_id']}-{day:03d}-{n}",
        voice_id=voice["voice_id"],
        platform=voice["platform"],
        timestamp=start + offset,
        title=title,
        text=text,
        metrics=ContentMetrics(
            views=int(rng.integers(1_000, 250_000)),
            likes=int(rng.integers(10, 20_000)),
            comments=int(rng.integers(0, 2_000)),
            shares=int(rng.integers(0, 5_000)),
        ),
    )


def generate_demo_content(
    seed: int = 7,
    days: int = 14,
    posts_per_day: int = 2,
    start: datetime = DEMO_START,
    scenarios: Sequence[FlipScenario] = FLIP_SCENARIOS,
) -> List[RawContentItem]:
    """Generate a reproducible list of demo content items, oldest first.

    Every scenario pair gets one post per day, so its daily stance bins are
    contiguous and the injected flip is detectable.
    """
    rng = np.random.default_rng(seed)
    catalog = demo_catalog()
    topics = {t.topic_id: t for t in catalog.topics}
    topic_ids = sorted(topics)

    base_stance = {
        (v["voice_id"], topic_id): float(rng.uniform(-0.8, 0.8))
        for v in DEMO_VOICES
        for topic_id in topic_ids
    }
    scenario_by_voice = {s.voice_id: s for s in scenarios}

    items: List[RawContentItem] = []
    for voice in DEMO_VOICES:
        scenario = scenario_by_voice.get(voice["voice_id"])
        for day in range(days):
            n_posts = int(rng.integers(1, posts_per_day + 1))
            for n in range(n_posts):
                topic_id = _pick(rng, topic_ids)
                if scenario is not None and topic_id == scenario.topic_id:
                    continue
                stance = base_stance[(voice["voice_id"], topic_id)] + float(rng.normal(0, 0.15))
                post = _compose(rng, topics[topic_id], stance)
                items.append(_item(rng, voice, day, n, start, post))

            if scenario is None:
                continue
            after = day >= scenario.flip_day
            stance = scenario.stance_after if after else scenario.stance_before
            # The burst only runs on the flip day itself.
            terms = scenario.burst_terms if day == scenario.flip_day else ()
            post = _compose(rng, topics[scenario.topic_id], stance, terms)
            items.append(_item(rng, voice, day, posts_per_day, start, post))

    items.sort(key=lambda item: (item.timestamp, item.id))
    logger.info(f"Generated {len(items)} demo items over {days} days (seed={seed})")
    return items
