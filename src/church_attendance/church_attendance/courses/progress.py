"""Pure progress computations over a subcategory's events."""
from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..events.model import EventRecord
from .model import CourseCompletion, EventSlot

SlotKey = Union[Tuple[str, int], Tuple[str, str]]


def _slot_key(event: EventRecord) -> SlotKey:
    # Events without an order each occupy their own slot.
    if event.order is None:
        return ("event", event.event_id)
    return ("order", int(event.order))


def build_slots(
    events: Sequence[EventRecord],
    completions_by_event: Mapping[str, CourseCompletion],
) -> List[EventSlot]:
    """One slot per distinct ``order``; a completed event wins its slot."""

    slots: Dict[SlotKey, EventSlot] = {}
    for event in events:
        candidate = EventSlot(event=event, completion=completions_by_event.get(event.event_id))
        key = _slot_key(event)
        current = slots.get(key)
        if current is None or (candidate.is_completed and not current.is_completed):
            slots[key] = candidate

    def sort_key(slot: EventSlot):
        return (slot.order is None, slot.order or 0, slot.event.event_id)

    return sorted(slots.values(), key=sort_key)


def completion_percentage(slots: Sequence[EventSlot]) -> int:
    if not slots:
        return 0
    done = sum(1 for s in slots if s.is_completed)
    # Half-up rounding; Python's round() would send 50.5 to 50.
    pct = int(100 * done / len(slots) + 0.5)
    if done < len(slots):
        pct = min(pct, 99)
    return max(0, min(100, pct))


def required_event_ids(events: Iterable[EventRecord]) -> Set[str]:
    return {e.event_id for e in events if e.required}


def completed_event_ids(completions: Iterable[CourseCompletion]) -> Set[str]:
    return {c.event_id for c in completions if c.is_completed}


def required_set_satisfied(required: Set[str], completed: Set[str]) -> bool:
    """True when a non-empty required set is fully covered."""

    return bool(required) and required <= completed


def index_by_event(completions: Iterable[CourseCompletion]) -> Dict[str, CourseCompletion]:
    index: Dict[str, CourseCompletion] = {}
    for c in completions:
        current: Optional[CourseCompletion] = index.get(c.event_id)
        if current is None or (c.is_completed and not current.is_completed):
            index[c.event_id] = c
    return index
