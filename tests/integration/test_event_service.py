import pytest

from eventify.application.event_service import EventService
from eventify.domain.exceptions import NotFoundError, ValidationError
from eventify.domain.inventory import EventStatus


def _tickets(*names):
    return [{"name": name, "price": 100, "quantity": 20} for name in names]


def test_new_events_start_as_draft(db, organizer):
    event = EventService(db).create_event("Jazz Night", _tickets("VIP", "General"), organizer.id)

    assert event.status == EventStatus.DRAFT
    assert sorted(t.name for t in event.ticket_types) == ["General", "VIP"]
    assert all(t.sold == 0 for t in event.ticket_types)


def test_ticket_type_names_must_be_unique_per_event(db):
    with pytest.raises(ValidationError):
        EventService(db).create_event("Jazz Night", _tickets("VIP", " vip"))


def test_unknown_organizer_is_not_found(db):
    with pytest.raises(NotFoundError):
        EventService(db).create_event("Jazz Night", _tickets("VIP"), organizer_id="nobody")


def test_status_actions_are_logged(db, make_event):
    event = make_event(status=EventStatus.DRAFT)
    service = EventService(db)

    service.update_event_status(event.id, "PUBLISH", actor_id="admin-1")
    updated = service.update_event_status(event.id, "COMPLETE", actor_id="admin-1")

    assert updated.status == EventStatus.COMPLETED
    assert [(entry["from"], entry["to"]) for entry in updated.status_log] == [
        ("DRAFT", "PUBLISHED"),
        ("PUBLISHED", "COMPLETED"),
    ]


def test_reapplying_current_status_is_rejected(db, make_event):
    event = make_event(status=EventStatus.PUBLISHED)

    with pytest.raises(ValidationError):
        EventService(db).update_event_status(event.id, "PUBLISH", actor_id="admin-1")


def test_unknown_action_is_rejected(db, make_event):
    event = make_event()

    with pytest.raises(ValidationError):
        EventService(db).update_event_status(event.id, "ARCHIVE", actor_id="admin-1")


def test_missing_event_is_not_found(db):
    with pytest.raises(NotFoundError):
        EventService(db).update_event_status("missing", "PUBLISH", actor_id="admin-1")
