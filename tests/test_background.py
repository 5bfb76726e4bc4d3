import asyncio
import datetime
import logging
from unittest.mock import AsyncMock

from aiokafka.errors import KafkaConnectionError

from dispatch_service import models, outbox_poller
from dispatch_service.integrity_monitor import check_dispatch_integrity
from dispatch_service.outbox_poller import publish_pending_events


def add_pending_event(db_session, payload: str):
    event = models.OutboxEvent(topic="dispatch_events", payload=payload, status="PENDING")
    db_session.add(event)
    db_session.commit()
    return event.id


# --- Outbox poller ---

def test_publish_sends_and_deletes_events(db_session):
    first = add_pending_event(db_session, '{"event": "assignment.created"}')
    second = add_pending_event(db_session, '{"event": "assignment.deleted"}')
    producer = AsyncMock()

    sent = asyncio.run(publish_pending_events(db_session, producer))

    assert sent == 2
    assert producer.send_and_wait.await_count == 2
    first_call = producer.send_and_wait.await_args_list[0]
    assert first_call.kwargs == {"topic": "dispatch_events", "value": b'{"event": "assignment.created"}'}
    remaining = {e.id for e in db_session.query(models.OutboxEvent).all()}
    assert first not in remaining
    assert second not in remaining


def test_publish_keeps_failed_events_pending(db_session):
    ok_id = add_pending_event(db_session, '{"event": "booking.created"}')
    failed_id = add_pending_event(db_session, '{"event": "assignment.created"}')
    producer = AsyncMock()
    producer.send_and_wait.side_effect = [None, KafkaConnectionError("broker down")]

    sent = asyncio.run(publish_pending_events(db_session, producer))

    assert sent == 1
    remaining = db_session.query(models.OutboxEvent).all()
    assert [e.id for e in remaining] == [failed_id]
    assert remaining[0].status == "PENDING"
    assert ok_id not in {e.id for e in remaining}


def test_publish_with_empty_outbox(db_session):
    producer = AsyncMock()
    assert asyncio.run(publish_pending_events(db_session, producer)) == 0
    producer.send_and_wait.assert_not_called()


def test_connect_producer_gives_up(mocker):
    producer = AsyncMock()
    producer.start.side_effect = KafkaConnectionError("no broker")
    mocker.patch.object(outbox_poller, "AIOKafkaProducer", return_value=producer)

    result = asyncio.run(outbox_poller.connect_producer(retry_delay=0, max_retries=2))

    assert result is None
    assert producer.start.await_count == 2
    assert producer.stop.await_count == 2


def test_poller_exits_without_kafka(mocker):
    mocker.patch.object(outbox_poller, "connect_producer", new_callable=AsyncMock, return_value=None)
    session_factory = mocker.patch.object(outbox_poller, "SessionLocal")

    asyncio.run(outbox_poller.run_outbox_poller(poll_interval=0))

    session_factory.assert_not_called()


# --- Integrity monitor ---

def test_integrity_monitor_logs_findings(db_session, caplog, make_driver, make_tour_booking, make_assignment):
    driver_id = make_driver().id
    booking_id = make_tour_booking(booking_date=datetime.date(2099, 10, 10)).id
    make_assignment(driver_id, booking_id)
    make_assignment(driver_id, booking_id)
    make_assignment(driver_id, 654321)

    with caplog.at_level(logging.WARNING, logger="integrity_monitor"):
        report = asyncio.run(check_dispatch_integrity(db_session))

    assert len(report["orphaned_assignments"]) == 1
    assert len(report["duplicate_bookings"]) == 1
    assert len(report["driver_date_overlaps"]) == 1
    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert any("missing booking 654321" in m for m in messages)
    assert any(f"Booking {booking_id} has multiple live assignments" in m for m in messages)
    assert any(f"Driver {driver_id} has multiple live assignments" in m for m in messages)


def test_integrity_monitor_clean_store(db_session, caplog, make_driver, make_tour_booking, make_assignment):
    make_assignment(make_driver().id, make_tour_booking().id)

    with caplog.at_level(logging.INFO, logger="integrity_monitor"):
        report = asyncio.run(check_dispatch_integrity(db_session))

    assert report == {"orphaned_assignments": [], "duplicate_bookings": [], "driver_date_overlaps": []}
    assert "No integrity problems found." in caplog.text
