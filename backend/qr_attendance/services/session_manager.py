"""Registry of active QR broadcasts, one per class."""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from qr_attendance.errors import AlreadyBroadcasting, NotBroadcasting
from qr_attendance.services.token_codec import TokenCodec
from qr_attendance.utils.helpers import isoformat, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    """A token as handed to the teacher display."""
    token: str
    issued_at: datetime
    nonce: str


class QRSession:
    """One active broadcast of rotating tokens for a class."""

    def __init__(self, class_id: int, created_at: datetime, rotation_interval: timedelta,
                 token_ttl: timedelta, first_token: IssuedToken, started_by: str = None):
        self.class_id = class_id
        self.created_at = created_at
        self.started_by = started_by
        self.rotation_interval = rotation_interval
        self.token_ttl = token_ttl
        self.last_activity_at = created_at
        self.history: List[IssuedToken] = []
        self.current = first_token
        self._rotate_lock = threading.Lock()

    def advance(self, issued: IssuedToken, now: datetime) -> None:
        """Make ``issued`` current and keep superseded tokens younger than the TTL."""
        with self._rotate_lock:
            retained = [
                token for token in [self.current] + self.history
                if now - token.issued_at <= self.token_ttl
            ]
            # Publish history before current so a lock-free reader never misses a token.
            self.history = retained
            self.current = issued

    def knows_nonce(self, nonce: str) -> bool:
        # Read order mirrors advance(): current first, then history.
        if self.current.nonce == nonce:
            return True
        return any(token.nonce == nonce for token in self.history)

    def rotation_due(self, now: datetime) -> bool:
        return now - self.current.issued_at >= self.rotation_interval

    def touch(self, now: datetime) -> None:
        self.last_activity_at = now

    def to_dict(self) -> dict:
        return {
            'class_id': self.class_id,
            'created_at': isoformat(self.created_at),
            'started_by': self.started_by,
            'rotation_interval_seconds': self.rotation_interval.total_seconds(),
            'token_ttl_seconds': self.token_ttl.total_seconds(),
            'current_token_issued_at': isoformat(self.current.issued_at),
            'last_activity_at': isoformat(self.last_activity_at)
        }


class QRSessionManager:
    """Owns the ``Idle -> Broadcasting -> Idle`` lifecycle of every class.

    Registry mutations are serialized by a lock. Token validation reads the
    registry without locking and relies on the TTL check alone, so a token
    rotated out a moment ago is still accepted while it is younger than the TTL.

    With ``auto_rotate`` each broadcast gets an interval job on a background
    scheduler. Without it, tokens rotate only when ``current_token`` is polled.
    """

    def __init__(self, codec: TokenCodec, rotation_interval: float = 5, token_ttl: float = 15,
                 idle_timeout: float = 900, clock: Callable[[], datetime] = utcnow,
                 auto_rotate: bool = True):
        if token_ttl < rotation_interval:
            raise ValueError("Token TTL must cover at least one rotation interval")

        self.codec = codec
        self.rotation_interval = timedelta(seconds=rotation_interval)
        self.token_ttl = timedelta(seconds=token_ttl)
        self.idle_timeout = timedelta(seconds=idle_timeout) if idle_timeout else None
        self.clock = clock
        self.scheduler = BackgroundScheduler(daemon=True) if auto_rotate else None
        self._sessions: Dict[int, QRSession] = {}
        self._lock = threading.Lock()

    @property
    def grace_window(self) -> timedelta:
        """How long a superseded token stays acceptable."""
        return self.token_ttl - self.rotation_interval

    @staticmethod
    def rotation_job_id(class_id: int) -> str:
        return f'qr-rotation-{class_id}'

    def start_broadcast(self, class_id: int, started_by: str = None) -> QRSession:
        now = self.clock()
        self._get_live(class_id, now)

        with self._lock:
            if class_id in self._sessions:
                raise AlreadyBroadcasting()

            session = QRSession(
                class_id=class_id,
                created_at=now,
                rotation_interval=self.rotation_interval,
                token_ttl=self.token_ttl,
                first_token=self._mint(class_id, now),
                started_by=started_by
            )
            self._sessions[class_id] = session
            self._schedule_rotation(session)

        logger.info("QR broadcast started for class %s by %s", class_id, started_by)
        return session

    def rotate(self, session: QRSession) -> IssuedToken:
        now = self.clock()
        issued = self._mint(session.class_id, now)
        session.advance(issued, now)
        return issued

    def stop_broadcast(self, class_id: int) -> None:
        with self._lock:
            session = self._sessions.pop(class_id, None)
            if session is not None:
                self._unschedule_rotation(class_id)

        if session is None:
            raise NotBroadcasting()

        logger.info("QR broadcast stopped for class %s", class_id)

    def current_token(self, class_id: int) -> IssuedToken:
        now = self.clock()
        session = self._get_live(class_id, now)
        if session is None:
            raise NotBroadcasting()

        if session.rotation_due(now):
            self.rotate(session)
        session.touch(now)
        return session.current

    def is_token_currently_valid(self, class_id: int, issued_at: datetime, nonce: str = None) -> bool:
        now = self.clock()
        session = self._get_live(class_id, now)
        if session is None:
            return False

        age = now - issued_at
        if age < timedelta(0) or age > session.token_ttl:
            return False

        if nonce is not None and not session.knows_nonce(nonce):
            return False

        return True

    def get(self, class_id: int) -> Optional[QRSession]:
        return self._get_live(class_id, self.clock())

    def active_sessions(self) -> List[QRSession]:
        now = self.clock()
        for session in list(self._sessions.values()):
            self._expire_if_idle(session, now)
        return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def shutdown(self) -> None:
        with self._lock:
            self._sessions.clear()

        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def _schedule_rotation(self, session: QRSession) -> None:
        if self.scheduler is None:
            return

        self.scheduler.add_job(
            func=self._tick,
            trigger='interval',
            seconds=self.rotation_interval.total_seconds(),
            args=[session.class_id, session],
            id=self.rotation_job_id(session.class_id),
            name=f'Rotate QR token for class {session.class_id}',
            replace_existing=True,
            coalesce=True,
            max_instances=1
        )
        if not self.scheduler.running:
            self.scheduler.start()

    def _unschedule_rotation(self, class_id: int) -> None:
        if self.scheduler is None:
            return

        try:
            self.scheduler.remove_job(self.rotation_job_id(class_id))
        except JobLookupError:
            logger.debug("No rotation job left for class %s", class_id)

    def _mint(self, class_id: int, now: datetime) -> IssuedToken:
        nonce = self.codec.new_nonce()
        return IssuedToken(
            token=self.codec.encode(class_id, now, nonce),
            issued_at=now,
            nonce=nonce
        )

    def _get_live(self, class_id: int, now: datetime) -> Optional[QRSession]:
        session = self._sessions.get(class_id)
        if session is None or self._expire_if_idle(session, now):
            return None
        return session

    def _expire_if_idle(self, session: QRSession, now: datetime) -> bool:
        if self.idle_timeout is None or now - session.last_activity_at <= self.idle_timeout:
            return False

        with self._lock:
            removed = self._sessions.get(session.class_id) is session
            if removed:
                del self._sessions[session.class_id]
                self._unschedule_rotation(session.class_id)

        if removed:
            logger.info("QR broadcast for class %s expired after inactivity", session.class_id)
        return True

    def _tick(self, class_id: int, session: QRSession) -> None:
        # A stale job from a replaced broadcast must not touch the new one.
        if self._sessions.get(class_id) is not session:
            return

        if self._expire_if_idle(session, self.clock()):
            return

        self.rotate(session)
