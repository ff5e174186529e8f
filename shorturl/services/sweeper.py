import logging
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from shorturl.db import repository
from shorturl.utils.encoding import utc_now

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "expiry-sweep"


class ExpirySweeper:
    """
    Periodically deactivates mappings whose expiry has passed.

    Owned by the application lifespan: start() on boot, stop() on shutdown.
    A failed run is logged and the next tick tries again.
    """

    def __init__(self, session_factory: Callable[[], Session], interval_seconds: int = 3600):
        self._session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self, now: Optional[datetime] = None) -> int:
        db = self._session_factory()
        try:
            expired_ids = repository.find_expired_ids(db, now or utc_now())
            count = repository.mark_inactive(db, expired_ids)
            if count:
                logger.info(
                    "Cleaned up %d expired URLs", count,
                    extra={"context": {"deactivated": count}},
                )
            return count
        except Exception:
            logger.exception("Expiry sweep failed; retrying on next tick")
            return 0
        finally:
            db.close()

    def start(self) -> None:
        if self.running:
            return
        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.run_once,
            trigger="interval",
            seconds=self.interval_seconds,
            id=SWEEP_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Expiry sweeper started, interval=%ss", self.interval_seconds)

    def stop(self) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=True)
        self._scheduler = None
        logger.info("Expiry sweeper stopped")
