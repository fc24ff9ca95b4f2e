"""Test the QR broadcast lifecycle and token freshness rules."""
import time
from datetime import timedelta

import pytest

from qr_attendance.errors import AlreadyBroadcasting, NotBroadcasting
from qr_attendance.services.session_manager import QRSessionManager
from qr_attendance.services.token_codec import TokenCodec

CLASS_ID = 11


@pytest.fixture
def codec():
    return TokenCodec('manager-secret')


@pytest.fixture
def manager(codec, clock):
    manager = QRSessionManager(
        codec, rotation_interval=5, token_ttl=15, idle_timeout=600,
        clock=clock, auto_rotate=False
    )
    yield manager
    manager.shutdown()


def is_valid(manager, issued):
    return manager.is_token_currently_valid(CLASS_ID, issued.issued_at, issued.nonce)


def test_start_issues_token_for_class(manager, codec, clock):
    session = manager.start_broadcast(CLASS_ID, started_by='teacher@school.edu')

    payload = codec.decode(session.current.token)
    assert payload.class_id == CLASS_ID
    assert payload.issued_at == clock()
    assert session.started_by == 'teacher@school.edu'
    assert is_valid(manager, session.current)


def test_start_twice_fails(manager):
    manager.start_broadcast(CLASS_ID)

    with pytest.raises(AlreadyBroadcasting):
        manager.start_broadcast(CLASS_ID)


def test_broadcasts_are_per_class(manager):
    manager.start_broadcast(CLASS_ID)
    manager.start_broadcast(CLASS_ID + 1)

    assert [s.class_id for s in manager.active_sessions()] == [CLASS_ID, CLASS_ID + 1]


def test_stop_invalidates_outstanding_tokens(manager):
    issued = manager.start_broadcast(CLASS_ID).current

    manager.stop_broadcast(CLASS_ID)

    assert not is_valid(manager, issued)
    assert manager.get(CLASS_ID) is None
    with pytest.raises(NotBroadcasting):
        manager.current_token(CLASS_ID)


def test_stop_when_idle_fails(manager):
    with pytest.raises(NotBroadcasting):
        manager.stop_broadcast(CLASS_ID)


def test_restart_rejects_tokens_from_previous_broadcast(manager):
    old = manager.start_broadcast(CLASS_ID).current
    manager.stop_broadcast(CLASS_ID)
    manager.start_broadcast(CLASS_ID)

    assert not is_valid(manager, old)


def test_token_valid_until_exactly_ttl(manager, clock):
    issued = manager.start_broadcast(CLASS_ID).current

    clock.advance(seconds=15)
    assert is_valid(manager, issued)

    clock.advance(microseconds=1)
    assert not is_valid(manager, issued)


def test_token_from_the_future_is_rejected(manager, clock):
    issued = manager.start_broadcast(CLASS_ID).current

    clock.advance(seconds=-1)
    assert not is_valid(manager, issued)


def test_unknown_nonce_is_rejected(manager):
    issued = manager.start_broadcast(CLASS_ID).current

    assert not manager.is_token_currently_valid(CLASS_ID, issued.issued_at, 'forged-nonce')
    assert not manager.is_token_currently_valid(CLASS_ID + 1, issued.issued_at, issued.nonce)


def test_rotated_token_stays_valid_for_grace_window(manager, clock):
    session = manager.start_broadcast(CLASS_ID)
    first = session.current

    clock.advance(seconds=5)
    second = manager.rotate(session)

    assert session.current == second
    assert first in session.history
    assert is_valid(manager, first)
    assert is_valid(manager, second)
    assert manager.grace_window == timedelta(seconds=10)


def test_rotation_trims_history_older_than_ttl(manager, clock):
    session = manager.start_broadcast(CLASS_ID)
    first = session.current

    for _ in range(4):
        clock.advance(seconds=5)
        manager.rotate(session)

    assert first not in session.history
    assert len(session.history) == 3
    assert not is_valid(manager, first)


def test_current_token_rotates_when_due(manager, clock):
    first = manager.start_broadcast(CLASS_ID).current

    clock.advance(seconds=4)
    assert manager.current_token(CLASS_ID) == first

    clock.advance(seconds=1)
    second = manager.current_token(CLASS_ID)
    assert second != first
    assert second.issued_at == clock()


def test_idle_broadcast_expires(manager, clock):
    issued = manager.start_broadcast(CLASS_ID).current

    clock.advance(seconds=601)

    assert manager.get(CLASS_ID) is None
    assert not is_valid(manager, issued)
    assert manager.active_sessions() == []
    manager.start_broadcast(CLASS_ID)


def test_polling_keeps_broadcast_alive(manager, clock):
    manager.start_broadcast(CLASS_ID)

    for _ in range(3):
        clock.advance(seconds=300)
        manager.current_token(CLASS_ID)

    assert manager.get(CLASS_ID) is not None


def test_ttl_must_cover_rotation_interval(codec):
    with pytest.raises(ValueError):
        QRSessionManager(codec, rotation_interval=10, token_ttl=5)


def test_manual_rotation_has_no_scheduler(manager):
    manager.start_broadcast(CLASS_ID)

    assert manager.scheduler is None


def test_broadcast_owns_a_rotation_job(codec):
    manager = QRSessionManager(codec, rotation_interval=5, token_ttl=15, auto_rotate=True)
    job_id = QRSessionManager.rotation_job_id(CLASS_ID)
    try:
        manager.start_broadcast(CLASS_ID)
        job = manager.scheduler.get_job(job_id)
        assert job is not None
        assert job.trigger.interval == timedelta(seconds=5)

        manager.stop_broadcast(CLASS_ID)
        assert manager.scheduler.get_job(job_id) is None
    finally:
        manager.shutdown()

    assert not manager.scheduler.running


def test_idle_expiry_removes_rotation_job(codec, clock):
    manager = QRSessionManager(codec, rotation_interval=5, token_ttl=15, idle_timeout=60,
                               clock=clock, auto_rotate=True)
    try:
        manager.start_broadcast(CLASS_ID)
        clock.advance(seconds=61)

        assert manager.get(CLASS_ID) is None
        assert manager.scheduler.get_job(QRSessionManager.rotation_job_id(CLASS_ID)) is None
    finally:
        manager.shutdown()


def test_auto_rotation_replaces_current_token(codec):
    manager = QRSessionManager(codec, rotation_interval=0.05, token_ttl=1, auto_rotate=True)
    try:
        session = manager.start_broadcast(CLASS_ID)
        first = session.current

        deadline = time.monotonic() + 3
        while session.current == first and time.monotonic() < deadline:
            time.sleep(0.01)

        assert session.current != first
    finally:
        manager.shutdown()
