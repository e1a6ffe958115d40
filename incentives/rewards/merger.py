"""Event merger: one validated, totally ordered stream per reward run."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from ..errors import ValidationError
from ..models import ADDRESSED_EVENT_TYPES, RewardEvent, RewardEventType

logger = logging.getLogger(__name__)

# Subgraph position snapshots have no log index; sort them after every
# same-timestamp log event.
POSITION_SNAPSHOT_LOG_INDEX = 1_000_000


def log_index_from_id(entity_id: str) -> int:
    """Extract the log index from a ``<txhash>-<logIndex>`` entity id."""
    parts = entity_id.split("-")
    if len(parts) < 2 or not parts[1].isdigit():
        raise ValidationError(f"Invalid log index in id {entity_id!r}")
    return int(parts[1])


def event_sort_key(event: RewardEvent) -> tuple[int, int]:
    return (event.timestamp, event.log_index)


def validate_event(event: RewardEvent) -> None:
    if (
        event is None
        or event.log_index is None
        or not event.timestamp
        or event.type is None
        or event.value is None
    ):
        raise ValidationError(f"Inconsistent event: {event!r}")

    if not isinstance(event.type, RewardEventType):
        raise ValidationError(f"Inconsistent event, unknown type: {event!r}")

    if event.type in ADDRESSED_EVENT_TYPES:
        if not event.address:
            raise ValidationError(f"Inconsistent event, missing address: {event!r}")
    elif event.address:
        raise ValidationError(f"Inconsistent event, unexpected address: {event!r}")


def validate_events(events: Iterable[RewardEvent]) -> None:
    for event in events:
        validate_event(event)


def merge_events(
    *streams: Iterable[RewardEvent],
    exclusion_list: Iterable[str] = (),
) -> list[RewardEvent]:
    """Combine sub-streams into one stream sorted by (timestamp, log_index).

    Events of excluded addresses are dropped before validation; the sort is
    stable so equal keys keep their sub-stream order.
    """
    excluded = set(exclusion_list)
    merged = [
        event
        for stream in streams
        for event in stream
        if event is None or not event.address or event.address not in excluded
    ]

    validate_events(merged)
    merged.sort(key=event_sort_key)

    logger.info("Fetched a total of %d events", len(merged))
    return merged
