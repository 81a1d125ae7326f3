"""Unit tests for rubric configuration and the event catalog."""

import pytest

from ovballot.rubric import (
    MAX_BALLOT_TOTAL,
    EventGroup,
    RubricConfig,
    RubricKind,
    rubric_sheet,
    seed_catalog,
    slot_labels,
)
from ovballot.services.event_types import get_event_type, list_event_types, seed_event_types
from ovballot.errors import NotFound


def test_limited_prep_is_judged_on_platform_rubric():
    config = RubricConfig.for_group(EventGroup.LIMITED_PREP)
    assert config.kind == RubricKind.PLATFORM
    assert slot_labels(config) == [
        "Content",
        "Organization & Citations",
        "Vocal Delivery",
        "Physical Delivery",
        "Impact",
    ]


def test_interpretation_labels():
    config = RubricConfig.for_group(EventGroup.INTERPRETATION)
    labels = slot_labels(config)
    assert labels[2:4] == ["Characterization", "Blocking"]
    assert config.to_dict()["categories"][2:4] == ["characterization", "blocking"]


def test_blob_round_trip_keys():
    blob = RubricConfig.for_group(EventGroup.PLATFORM, sort_order=3).to_dict()
    assert set(blob) == {"categories", "type", "group", "sortOrder", "categoryLabels"}
    assert blob["type"] == "platform"
    assert blob["categoryLabels"] == {"category_3": "Vocal Delivery", "category_4": "Physical Delivery"}
    assert RubricConfig.from_dict(blob) == RubricConfig.for_group(EventGroup.PLATFORM, sort_order=3)


def test_minimal_blob_falls_back_to_kind_defaults():
    config = RubricConfig.from_dict({"type": "interpretation"})
    assert config.group == EventGroup.INTERPRETATION
    assert slot_labels(config)[2] == "Characterization"


def test_explicit_labels_win():
    config = RubricConfig.from_dict({
        "type": "platform",
        "categoryLabels": {"category_3": "Voice", "category_4": "Body"},
    })
    assert slot_labels(config)[2:4] == ["Voice", "Body"]


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        RubricConfig.from_dict({"type": "debate"})


def test_rubric_sheet_has_criteria_for_every_level():
    sheet = rubric_sheet(RubricConfig.for_group(EventGroup.INTERPRETATION))
    assert [row["scoreField"] for row in sheet] == [
        "score_content",
        "score_organization_citations",
        "score_category3",
        "score_category4",
        "score_impact",
    ]
    for row in sheet:
        assert sorted(row["criteria"]) == ["1", "2", "3", "4", "5"]
    assert MAX_BALLOT_TOTAL == 25


def test_catalog_has_ten_events_in_three_groups():
    catalog = seed_catalog()
    assert len(catalog) == 10
    groups = {config.group for _, _, config in catalog}
    assert groups == set(EventGroup)
    assert [config.sort_order for _, _, config in catalog] == list(range(1, 11))


def test_seeding_is_idempotent(db_session, tables):
    assert seed_event_types(db_session) == (10, 0)
    assert seed_event_types(db_session) == (0, 10)

    names = [et.display_name for et in list_event_types(db_session)]
    assert names == sorted(names)
    assert len(names) == 10


def test_get_event_type(db_session, event_types):
    duo = event_types["duo_interpretation"]
    assert get_event_type(db_session, duo.id).rubric.kind == RubricKind.INTERPRETATION
    with pytest.raises(NotFound):
        get_event_type(db_session, 424242)
