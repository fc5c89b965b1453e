import logging
import random
import time

from flask import current_app
from sqlalchemy import select, update

from ..errors import LockTargetMissing, LockTimeout, UnlockFailure
from ..extensions import db
from ..models.notification_digest import NotificationDigest

logger = logging.getLogger(__name__)


class DigestLock:
    """Mutex for one NotificationDigest row, shared by every process on the database.

    Acquire is a conditional update (``busy`` false -> true) that only one
    caller can win; losers back off for a random 100-200ms and try again, up
    to ``LOCK_MAX_ATTEMPTS`` times (roughly 15 seconds). Release flips
    ``busy`` back. Nothing is held in process memory.
    """

    def __init__(self, model=NotificationDigest, max_attempts=None, backoff_ms=None,
                 sleep=time.sleep, rng=None):
        self.model = model
        self.max_attempts = max_attempts
        self.backoff_ms = backoff_ms
        self.sleep = sleep
        self.rng = rng or random.Random()

    def _settings(self):
        cfg = current_app.config
        max_attempts = self.max_attempts or cfg.get('LOCK_MAX_ATTEMPTS', 100)
        low, high = self.backoff_ms or (cfg.get('LOCK_BACKOFF_MIN_MS', 100), cfg.get('LOCK_BACKOFF_MAX_MS', 200))
        return max_attempts, low, high

    def try_acquire(self, key):
        """Single compare-and-swap attempt.

        Returns ``(previous_busy, acquired)``. An absent ``key`` is not
        created here, since a digest row needs its user_id and org_id: it
        raises LockTargetMissing instead. Resolve ids with
        ``NotificationsDigestService.get_digest_id_for_user`` first.
        """
        res = db.session.execute(
            update(self.model)
            .where(self.model.id == key, self.model.busy.is_(False))
            .values(busy=True)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 1:
            db.session.commit()
            return False, True

        previous = db.session.execute(
            select(self.model.busy).where(self.model.id == key)
        ).scalar_one_or_none()
        # end the transaction so nothing is held while we back off
        db.session.rollback()
        if previous is None:
            raise LockTargetMissing(f"no {self.model.__tablename__} record with id {key}")
        return previous, False

    def release(self, key):
        res = db.session.execute(
            update(self.model)
            .where(self.model.id == key)
            .values(busy=False)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        if res.rowcount != 1:
            raise UnlockFailure(f"mutex could not be unlocked for {self.model.__tablename__} {key}")

    def acquire(self, key):
        max_attempts, low, high = self._settings()
        attempt = 1
        while True:
            _, acquired = self.try_acquire(key)
            if acquired:
                return attempt
            if attempt >= max_attempts:
                logger.warning('digest %s still busy after %d attempts, giving up', key, attempt)
                raise LockTimeout(key, attempt)
            delay_ms = low + self.rng.random() * (high - low)
            logger.debug('digest %s busy: attempt %d, retry in %.0fms', key, attempt, delay_ms)
            self.sleep(delay_ms / 1000.0)
            attempt += 1

    def with_lock(self, key, work):
        """Run ``work()`` while holding the mutex for ``key`` and return its result.

        The session is committed when ``work`` returns and rolled back when it
        raises. The mutex is released either way, and an error from ``work``
        only reaches the caller after the release has gone through.
        """
        if not callable(work):
            raise TypeError('with_lock must take a callable')
        self.acquire(key)
        try:
            result = work()
            db.session.commit()
        except BaseException:
            db.session.rollback()
            raise
        finally:
            self.release(key)
        return result
