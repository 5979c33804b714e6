import random

import pytest

from skillex_server.errors import InvalidRequest
from skillex_server.services.availability import (
    SLOTS,
    AvailabilityMask,
    overlap,
    slot_index,
    summarize,
    window_mask,
)

MONDAY = 0


def random_masks(n: int, seed: int = 7) -> list[AvailabilityMask]:
    rng = random.Random(seed)
    masks = [AvailabilityMask.empty(), AvailabilityMask((1 << SLOTS) - 1)]
    for _ in range(n):
        density = rng.random()
        masks.append(AvailabilityMask.from_hours(h for h in range(SLOTS) if rng.random() < density))
    return masks


def test_self_overlap_equals_popcount():
    for mask in random_masks(25):
        assert overlap(mask, mask).hours == mask.popcount()


def test_overlap_hours_are_symmetric():
    masks = random_masks(12)
    for a in masks:
        for b in masks:
            assert overlap(a, b).hours == overlap(b, a).hours


def test_percentage_is_bounded():
    masks = random_masks(12, seed=3)
    for a in masks:
        for b in masks:
            assert 0.0 <= overlap(a, b).percentage <= 100.0


def test_percentage_is_relative_to_requester():
    requester = AvailabilityMask.from_hours(slot_index(MONDAY, h) for h in (9, 10, 11))
    candidate = AvailabilityMask.from_hours(slot_index(MONDAY, h) for h in (10, 11, 12))

    result = overlap(requester, candidate)

    assert result.hours == 2
    assert result.percentage == pytest.approx(66.67, abs=0.01)


def test_always_available_candidate_gains_nothing_extra():
    requester = AvailabilityMask.from_hours(range(10, 14))
    aligned = AvailabilityMask.from_hours(range(10, 14))
    everywhere = AvailabilityMask((1 << SLOTS) - 1)

    assert overlap(requester, aligned).percentage == overlap(requester, everywhere).percentage == 100.0


def test_empty_requester_gives_zero_percent():
    result = overlap(AvailabilityMask.empty(), AvailabilityMask.from_hours(range(20)))
    assert result.hours == 0
    assert result.percentage == 0.0


def test_from_slots_requires_exactly_168_booleans():
    mask = AvailabilityMask.from_slots([i % 2 == 0 for i in range(SLOTS)])
    assert mask.popcount() == SLOTS // 2
    assert mask.to_slots()[:4] == [True, False, True, False]

    with pytest.raises(InvalidRequest):
        AvailabilityMask.from_slots([False] * 167)
    with pytest.raises(InvalidRequest):
        AvailabilityMask.from_slots([False] * 169)
    with pytest.raises(InvalidRequest):
        AvailabilityMask.from_slots([1] + [False] * 167)
    with pytest.raises(InvalidRequest):
        AvailabilityMask.from_slots("x" * SLOTS)


def test_slot_index_is_day_major():
    assert slot_index(0, 0) == 0
    assert slot_index(1, 0) == 24
    assert slot_index(6, 23) == SLOTS - 1
    with pytest.raises(ValueError):
        slot_index(7, 0)


def test_named_windows():
    tuesday_morning = AvailabilityMask.from_hours([slot_index(1, 8)])
    saturday_evening = AvailabilityMask.from_hours([slot_index(5, 20)])

    assert tuesday_morning.intersects(window_mask("morning"))
    assert tuesday_morning.intersects(window_mask("Weekday"))
    assert not tuesday_morning.intersects(window_mask("weekend"))
    assert saturday_evening.intersects(window_mask("evening"))
    assert saturday_evening.intersects(window_mask("weekend"))
    assert not saturday_evening.intersects(window_mask("afternoon"))

    assert window_mask("any") is None
    assert window_mask(None) is None


def test_unknown_window_is_rejected():
    with pytest.raises(InvalidRequest) as exc:
        window_mask("midnight")
    assert "morning" in exc.value.details["allowed"]


def test_summary_groups_weekdays_and_weekends():
    weekday_mornings = [slot_index(d, h) for d in range(5) for h in (9, 10, 11)]
    saturday = [slot_index(5, h) for h in (10, 11, 12, 13)]

    assert summarize(AvailabilityMask.from_hours(weekday_mornings)) == "Weekdays 9 AM-12 PM"
    assert (
        summarize(AvailabilityMask.from_hours(weekday_mornings + saturday))
        == "Weekdays 9 AM-12 PM, Sat 10 AM-2 PM"
    )


def test_summary_special_cases():
    assert summarize(AvailabilityMask.empty()) is None
    assert summarize(AvailabilityMask((1 << SLOTS) - 1)) == "Flexible schedule"
    assert summarize(window_mask("evening")) == "Every day 6 PM-12 AM"
    assert summarize(window_mask("weekend")) == "Weekends all day"

    split = AvailabilityMask.from_hours([slot_index(2, 9), slot_index(2, 14), slot_index(2, 15)])
    assert summarize(split) == "Wed 9 AM-10 AM & 2 PM-4 PM"
