"""
Rubric configuration for speech event types.

Every ballot has five score slots. Three of them mean the same thing in
every event (Content, Organization & Citations, Impact); the middle two
depend on the event's rubric kind:

- platform (Platform and Limited Prep groups): Vocal Delivery, Physical Delivery
- interpretation (Interpretation group): Characterization, Blocking

The rubric blob stored on ``EventType.rubric_config`` has fixed keys:

    {
        "categories": [...five category keys...],
        "type": "platform" | "interpretation",
        "group": "Platform" | "Limited Prep" | "Interpretation",
        "sortOrder": 1,
        "categoryLabels": {"category_3": "...", "category_4": "..."},
    }

``RubricConfig`` is the typed view of that blob. Label and criteria
resolution is a pure lookup on ``RubricKind``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional


class RubricKind(str, enum.Enum):
    PLATFORM = "platform"
    INTERPRETATION = "interpretation"


class EventGroup(str, enum.Enum):
    PLATFORM = "Platform"
    LIMITED_PREP = "Limited Prep"
    INTERPRETATION = "Interpretation"


# Group -> rubric kind. Limited Prep is judged on the platform rubric.
GROUP_KIND: dict[EventGroup, RubricKind] = {
    EventGroup.PLATFORM: RubricKind.PLATFORM,
    EventGroup.LIMITED_PREP: RubricKind.PLATFORM,
    EventGroup.INTERPRETATION: RubricKind.INTERPRETATION,
}


@dataclass(frozen=True)
class ScoreSlot:
    """One of the five scored categories on a ballot."""

    key: str
    score_field: str
    comments_field: str


SCORE_SLOTS: tuple[ScoreSlot, ...] = (
    ScoreSlot("content", "score_content", "comments_content"),
    ScoreSlot(
        "organization_citations",
        "score_organization_citations",
        "comments_organization_citations",
    ),
    ScoreSlot("category_3", "score_category3", "comments_category3"),
    ScoreSlot("category_4", "score_category4", "comments_category4"),
    ScoreSlot("impact", "score_impact", "comments_impact"),
)

SCORE_FIELDS: tuple[str, ...] = tuple(slot.score_field for slot in SCORE_SLOTS)
COMMENT_FIELDS: tuple[str, ...] = tuple(slot.comments_field for slot in SCORE_SLOTS)

MIN_SCORE = 1
MAX_SCORE = 5
MAX_BALLOT_TOTAL = MAX_SCORE * len(SCORE_SLOTS)

SCORE_LABELS: dict[int, str] = {
    1: "Beginning",
    2: "Developing",
    3: "Capable",
    4: "Proficient",
    5: "Excellent",
}


@dataclass(frozen=True)
class CategoryLabels:
    """Display labels for the two group-specific slots."""

    category_3: str
    category_4: str

    def to_dict(self) -> dict[str, str]:
        return {"category_3": self.category_3, "category_4": self.category_4}


CATEGORY_LABELS: dict[RubricKind, CategoryLabels] = {
    RubricKind.PLATFORM: CategoryLabels("Vocal Delivery", "Physical Delivery"),
    RubricKind.INTERPRETATION: CategoryLabels("Characterization", "Blocking"),
}

CATEGORY_KEYS: dict[RubricKind, tuple[str, ...]] = {
    RubricKind.PLATFORM: (
        "content",
        "organization_citations",
        "vocal_delivery",
        "physical_delivery",
        "impact",
    ),
    RubricKind.INTERPRETATION: (
        "content",
        "organization_citations",
        "characterization",
        "blocking",
        "impact",
    ),
}


@dataclass(frozen=True)
class RubricConfig:
    """Typed view of an event type's rubric blob."""

    kind: RubricKind
    group: EventGroup
    sort_order: int = 0
    category_labels: Optional[CategoryLabels] = None
    categories: tuple[str, ...] = field(default=())

    @classmethod
    def for_group(cls, group: EventGroup, sort_order: int = 0) -> "RubricConfig":
        kind = GROUP_KIND[group]
        return cls(
            kind=kind,
            group=group,
            sort_order=sort_order,
            category_labels=CATEGORY_LABELS[kind],
            categories=CATEGORY_KEYS[kind],
        )

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RubricConfig":
        """Parse a stored blob. Unknown kinds/groups raise ValueError."""
        kind = RubricKind(raw["type"])
        group_raw = raw.get("group")
        group = EventGroup(group_raw) if group_raw else _default_group(kind)
        labels_raw = raw.get("categoryLabels")
        labels = (
            CategoryLabels(labels_raw["category_3"], labels_raw["category_4"])
            if labels_raw
            else None
        )
        return cls(
            kind=kind,
            group=group,
            sort_order=int(raw.get("sortOrder") or 0),
            category_labels=labels,
            categories=tuple(raw.get("categories") or CATEGORY_KEYS[kind]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "categories": list(self.categories or CATEGORY_KEYS[self.kind]),
            "type": self.kind.value,
            "group": self.group.value,
            "sortOrder": self.sort_order,
            "categoryLabels": category_labels_for(self).to_dict(),
        }


def _default_group(kind: RubricKind) -> EventGroup:
    if kind is RubricKind.INTERPRETATION:
        return EventGroup.INTERPRETATION
    return EventGroup.PLATFORM


def category_labels_for(config: RubricConfig) -> CategoryLabels:
    """Labels for slots 3 and 4; explicit labels on the config win."""
    if config.category_labels is not None:
        return config.category_labels
    return CATEGORY_LABELS[config.kind]


def slot_labels(config: RubricConfig) -> list[str]:
    """Display labels for all five slots in ballot order."""
    labels = category_labels_for(config)
    return [
        "Content",
        "Organization & Citations",
        labels.category_3,
        labels.category_4,
        "Impact",
    ]


# =============================================================================
# Judge-facing criteria text, per rubric kind and slot
# =============================================================================

PLATFORM_CRITERIA: dict[str, dict[int, str]] = {
    "content": {
        1: "Beginning: Vague, general topic. Inadequate content. Unclear relevance or application.",
        2: "Developing: Interesting topic/thesis. Unclear links between points. Some relevance or application.",
        3: "Capable: Engaging topic/thesis. Generally clear analysis and connections. Clear relevance or application.",
        4: "Proficient: Engaging, relevant topic/thesis. Strong ideas with clear connections. Strong relevance or application.",
        5: "Excellent: Compelling topic/thesis. Robust content with sophisticated analysis. Powerful relevance or application.",
    },
    "organization_citations": {
        1: "Beginning: Confusing structure. Missing or unclear citations. Poor transitions.",
        2: "Developing: Some structure apparent. Confusing attributions. Basic transitions.",
        3: "Capable: Mostly clear thesis and structure. Acceptable citations. Reasonable transitions.",
        4: "Proficient: Clear structure with smooth transitions. Proper citations throughout.",
        5: "Excellent: Elegant structure. Seamless transitions. Elegant and well-integrated citations.",
    },
    "category_3": {
        1: "Beginning: Mumbling, halting, or monotone. Lack of energy. Difficult to understand.",
        2: "Developing: Inconsistent effectiveness. Variable volume, pace, or clarity.",
        3: "Capable: Generally accurate articulation. Appropriate volume and pace. Clear to understand.",
        4: "Proficient: Overall command of vocal elements. Effective use of energy and emphasis.",
        5: "Excellent: Powerful, memorable vocal style. Masterful control of pace, tone, and emphasis.",
    },
    "category_4": {
        1: "Beginning: Nervous or stiff. Minimal eye contact. Distracting movements.",
        2: "Developing: Inconsistent physical control. Some eye contact. Occasional distractions.",
        3: "Capable: Poised and confident. Effective use of body and gestures. Good eye contact.",
        4: "Proficient: Confident, professional control. Purposeful gestures. Strong audience connection.",
        5: "Excellent: Compelling, masterful use of space. Natural and engaging physical presence.",
    },
    "impact": {
        1: "Beginning: Minimally persuasive or engaging. Limited audience connection.",
        2: "Developing: Somewhat persuasive or engaging. Building audience connection.",
        3: "Capable: Generally persuasive or engaging. Consistent audience connection.",
        4: "Proficient: Persuasive and engaging. Meaningful audience connection established.",
        5: "Excellent: Memorably persuasive and engaging. Strong, lasting audience connection.",
    },
}

INTERPRETATION_CRITERIA: dict[str, dict[int, str]] = {
    "content": {
        1: "Beginning: Minimal literary merit or style. Minimal context for actions and events.",
        2: "Developing: Some literary merit or style. Some context for actions and events.",
        3: "Capable: Sufficient literary merit or style for artful storytelling. Clear context.",
        4: "Proficient: Engaging literary merit and style. Clear context for actions and events.",
        5: "Excellent: Captivating literary merit and style. Exceptional context for actions and events.",
    },
    "organization_citations": {
        1: "Beginning: Minimal structure or storyline. Ineffective intro/conclusion. Source unclear.",
        2: "Developing: Confusing structure or storyline. Basic intro/conclusion. Source stated.",
        3: "Capable: Mostly clear structure. Theme drawn from text. Intro/conclusion enhance speech.",
        4: "Proficient: Clear structure or storyline. Theme well-developed. Intro/conclusion enhance speech.",
        5: "Excellent: Elegant structure or storyline. Theme drawn out beautifully. Intro/conclusion enhance speech.",
    },
    "category_3": {
        1: "Beginning: Vague characters. Minimal vocal mannerisms, postures, or expressions. Unclear transitions.",
        2: "Developing: Somewhat distinct characters. Inconsistent mannerisms and expressions. Basic transitions.",
        3: "Capable: Distinct characters. Generally consistent mannerisms and expressions. Reasonable transitions.",
        4: "Proficient: Realistic characters. Variety of vocal mannerisms and expressions. Clear transitions.",
        5: "Excellent: Rich, believable characters. Skillful vocal mannerisms and expressions. Seamless transitions.",
    },
    "category_4": {
        1: "Beginning: Vague scenes. Minimal character positioning and movement. Unclear scene transitions.",
        2: "Developing: Somewhat distinct scenes. Some positioning and movement. Basic scene transitions.",
        3: "Capable: Distinct scenes. Reasonable positioning and imaginative movement. Generally clear transitions.",
        4: "Proficient: Realistic scenes. Effective positioning and movement. Smooth scene transitions.",
        5: "Excellent: Immersive scenes. Purposeful positioning and movement. Seamless scene transitions.",
    },
    "impact": {
        1: "Beginning: Minimally thought-provoking or engaging. Attempts audience connection.",
        2: "Developing: Somewhat thought-provoking or engaging. Builds some audience connection.",
        3: "Capable: Generally thought-provoking or engaging. Consistent audience connection.",
        4: "Proficient: Consistently thought-provoking or engaging. Meaningful audience connection.",
        5: "Excellent: Profoundly thought-provoking or engaging. Strong audience connection secured.",
    },
}

CRITERIA: dict[RubricKind, dict[str, dict[int, str]]] = {
    RubricKind.PLATFORM: PLATFORM_CRITERIA,
    RubricKind.INTERPRETATION: INTERPRETATION_CRITERIA,
}


def rubric_sheet(config: RubricConfig) -> list[dict[str, Any]]:
    """Label + 1-5 criteria for each slot, in ballot order, for the judge form."""
    criteria = CRITERIA[config.kind]
    return [
        {
            "key": slot.key,
            "scoreField": slot.score_field,
            "label": label,
            "criteria": {str(level): text for level, text in criteria[slot.key].items()},
        }
        for slot, label in zip(SCORE_SLOTS, slot_labels(config))
    ]


# =============================================================================
# Seed catalog
# =============================================================================

# (internal name, display name, group); sort order follows list position
EVENT_TYPE_CATALOG: tuple[tuple[str, str, EventGroup], ...] = (
    ("digital_presentation", "Digital Presentation", EventGroup.PLATFORM),
    ("informative", "Informative", EventGroup.PLATFORM),
    ("persuasive", "Persuasive", EventGroup.PLATFORM),
    ("apologetics", "Apologetics", EventGroup.LIMITED_PREP),
    ("extemporaneous", "Extemporaneous", EventGroup.LIMITED_PREP),
    ("impromptu", "Impromptu", EventGroup.LIMITED_PREP),
    ("biblical_presentation", "Biblical Presentation", EventGroup.INTERPRETATION),
    ("duo_interpretation", "Duo Interpretation", EventGroup.INTERPRETATION),
    ("open_interpretation", "Open Interpretation", EventGroup.INTERPRETATION),
    ("oratorical", "Oratorical", EventGroup.INTERPRETATION),
)


def seed_catalog() -> list[tuple[str, str, RubricConfig]]:
    return [
        (name, display_name, RubricConfig.for_group(group, sort_order=index))
        for index, (name, display_name, group) in enumerate(EVENT_TYPE_CATALOG, start=1)
    ]
