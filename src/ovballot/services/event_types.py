"""Event type catalog: listing and idempotent seeding."""

import logging

from sqlalchemy.orm import Session

from ovballot.db.models import EventType
from ovballot.errors import NotFound
from ovballot.rubric import seed_catalog

logger = logging.getLogger(__name__)


def list_event_types(session: Session) -> list[EventType]:
    return session.query(EventType).order_by(EventType.display_name.asc()).all()


def get_event_type(session: Session, event_type_id: int) -> EventType:
    event_type = session.get(EventType, event_type_id) if event_type_id else None
    if event_type is None:
        raise NotFound("Event type not found")
    return event_type


def seed_event_types(session: Session) -> tuple[int, int]:
    """
    Upsert the built-in catalog by internal name.

    Returns:
        (created, updated) counts
    """
    existing = {et.name: et for et in session.query(EventType).all()}
    created = updated = 0

    for name, display_name, config in seed_catalog():
        event_type = existing.get(name)
        if event_type is None:
            session.add(
                EventType(name=name, display_name=display_name, rubric_config=config.to_dict())
            )
            created += 1
        else:
            event_type.display_name = display_name
            event_type.rubric_config = config.to_dict()
            updated += 1
        logger.info("Seeded event type: %s", display_name)

    session.flush()
    return created, updated
