from dataclasses import dataclass
from typing import Iterable, Sequence

from skillex_server.errors import InvalidRequest

HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7
SLOTS = HOURS_PER_DAY * DAYS_PER_WEEK  # 168, slot 0 is Monday 00:00 UTC
FULL_WEEK = (1 << SLOTS) - 1

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def slot_index(day: int, hour: int) -> int:
    if not 0 <= day < DAYS_PER_WEEK or not 0 <= hour < HOURS_PER_DAY:
        raise ValueError(f"no slot for day={day} hour={hour}")
    return day * HOURS_PER_DAY + hour


@dataclass(frozen=True)
class AvailabilityMask:
    """Weekly availability as a 168-bit integer, bit ``day * 24 + hour`` set
    when the user is free during that UTC hour."""

    bits: int = 0

    def __post_init__(self):
        if self.bits < 0 or self.bits > FULL_WEEK:
            raise ValueError("availability mask must fit in 168 bits")

    @classmethod
    def empty(cls) -> "AvailabilityMask":
        return cls(0)

    @classmethod
    def from_slots(cls, slots: Sequence[bool]) -> "AvailabilityMask":
        """Build a mask from the client's 168-boolean weekMask.

        Anything that is not exactly 168 booleans is rejected, never padded.
        """
        if isinstance(slots, (str, bytes)) or not isinstance(slots, Sequence):
            raise InvalidRequest("availability mask must be a list of 168 booleans")
        if len(slots) != SLOTS:
            raise InvalidRequest(
                f"availability mask must have exactly {SLOTS} slots",
                details={"length": len(slots)},
            )
        bits = 0
        for i, slot in enumerate(slots):
            if not isinstance(slot, bool):
                raise InvalidRequest(
                    "availability mask slots must be booleans",
                    details={"index": i},
                )
            if slot:
                bits |= 1 << i
        return cls(bits)

    @classmethod
    def from_hours(cls, hours: Iterable[int]) -> "AvailabilityMask":
        bits = 0
        for h in hours:
            if not 0 <= h < SLOTS:
                raise ValueError(f"slot {h} is outside the week")
            bits |= 1 << h
        return cls(bits)

    def to_slots(self) -> list[bool]:
        return [bool(self.bits >> i & 1) for i in range(SLOTS)]

    def popcount(self) -> int:
        return self.bits.bit_count()

    def is_empty(self) -> bool:
        return self.bits == 0

    def intersects(self, other: "AvailabilityMask") -> bool:
        return (self.bits & other.bits) != 0

    def __and__(self, other: "AvailabilityMask") -> "AvailabilityMask":
        return AvailabilityMask(self.bits & other.bits)

    def __or__(self, other: "AvailabilityMask") -> "AvailabilityMask":
        return AvailabilityMask(self.bits | other.bits)

    def day_hours(self, day: int) -> list[int]:
        row = self.bits >> (day * HOURS_PER_DAY)
        return [h for h in range(HOURS_PER_DAY) if row >> h & 1]

    def summary(self) -> str | None:
        return summarize(self)


@dataclass(frozen=True)
class Overlap:
    hours: int
    percentage: float


def overlap(requester: AvailabilityMask, candidate: AvailabilityMask) -> Overlap:
    """Shared hours, and that count as a share of the requester's own hours.

    The percentage is relative to the requester rather than the union so a
    candidate who is free all week gains nothing over a well-aligned one.
    An empty requester mask yields 0%.
    """
    hours = (requester & candidate).popcount()
    percentage = hours / max(1, requester.popcount()) * 100
    return Overlap(hours=hours, percentage=min(100.0, percentage))


# ── Named windows ────────────────────────────────────────────────────────


def _window(days: Iterable[int], start_hour: int, end_hour: int) -> AvailabilityMask:
    return AvailabilityMask.from_hours(
        slot_index(d, h) for d in days for h in range(start_hour, end_hour)
    )


ALL_DAYS = range(DAYS_PER_WEEK)

WINDOWS: dict[str, AvailabilityMask | None] = {
    "any": None,
    "morning": _window(ALL_DAYS, 6, 12),
    "afternoon": _window(ALL_DAYS, 12, 18),
    "evening": _window(ALL_DAYS, 18, 24),
    "weekday": _window(range(0, 5), 0, 24),
    "weekend": _window(range(5, 7), 0, 24),
}


def window_mask(name: str | None) -> AvailabilityMask | None:
    """Return the mask for a named window, or None when no filter applies."""
    if name is None:
        return None
    key = name.strip().lower()
    if key == "":
        return None
    if key not in WINDOWS:
        raise InvalidRequest(
            f"unknown availability window {name!r}",
            details={"allowed": sorted(WINDOWS)},
        )
    return WINDOWS[key]


# ── Human readable summary ───────────────────────────────────────────────


def _format_hour(hour: int) -> str:
    h = hour % HOURS_PER_DAY
    suffix = "AM" if h < 12 else "PM"
    return f"{h % 12 or 12} {suffix}"


def _runs(hours: list[int]) -> tuple[tuple[int, int], ...]:
    runs = []
    for h in hours:
        if runs and runs[-1][1] == h:
            runs[-1][1] = h + 1
        else:
            runs.append([h, h + 1])
    return tuple((start, end) for start, end in runs)


def _format_runs(runs: tuple[tuple[int, int], ...]) -> str:
    if runs == ((0, HOURS_PER_DAY),):
        return "all day"
    return " & ".join(f"{_format_hour(s)}-{_format_hour(e)}" for s, e in runs)


def summarize(mask: AvailabilityMask) -> str | None:
    """Render a mask as short phrases, e.g. ``"Weekdays 9 AM-12 PM, Sat 10 AM-2 PM"``.

    Phrases are separated by ``", "``; the web card splits on that.
    """
    if mask.is_empty():
        return None
    if mask.bits == FULL_WEEK:
        return "Flexible schedule"

    per_day = [_runs(mask.day_hours(d)) for d in ALL_DAYS]

    if all(per_day[0] == r for r in per_day):
        return f"Every day {_format_runs(per_day[0])}"

    phrases = []
    weekdays_same = bool(per_day[0]) and all(per_day[0] == per_day[d] for d in range(1, 5))
    weekend_same = bool(per_day[5]) and per_day[5] == per_day[6]

    if weekdays_same:
        phrases.append(f"Weekdays {_format_runs(per_day[0])}")
    else:
        for d in range(0, 5):
            if per_day[d]:
                phrases.append(f"{DAY_NAMES[d]} {_format_runs(per_day[d])}")

    if weekend_same:
        phrases.append(f"Weekends {_format_runs(per_day[5])}")
    else:
        for d in (5, 6):
            if per_day[d]:
                phrases.append(f"{DAY_NAMES[d]} {_format_runs(per_day[d])}")

    return ", ".join(phrases)
