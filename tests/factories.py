# tests/factories.py

from app.models import EventType, NormalizedEvent


def make_event(
    date: str = "2024-03-05",
    person: str = "田中太郎",
    event_type: EventType = EventType.LATE,
    magnitude: float = 60,
    source_id: str = None,
) -> NormalizedEvent:
    return NormalizedEvent(
        date=date,
        person=person,
        event_type=event_type,
        magnitude=magnitude,
        source_id=source_id,
    )
