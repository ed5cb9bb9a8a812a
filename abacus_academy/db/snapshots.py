"""Key-value snapshot persistence backed by SQLAlchemy."""
import logging
from typing import Any, Callable, Dict, Optional
from sqlalchemy.orm import Session
from abacus_academy.config import settings
from abacus_academy.db.database import SessionLocal
from abacus_academy.db.models import Snapshot

logger = logging.getLogger(__name__)


class SqlSnapshotRepository:
    """Save, load and clear one JSON snapshot row.

    Each call opens and closes its own session so a failed write never
    leaves a dirty session behind. Errors propagate to the caller; the
    progress store decides whether to swallow them.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        key: Optional[str] = None,
    ) -> None:
        self._session_factory = session_factory
        self.key = key or settings.SNAPSHOT_KEY

    def save(self, data: Dict[str, Any]) -> None:
        """Insert or replace the snapshot row."""
        db = self._session_factory()
        try:
            row = db.get(Snapshot, self.key)
            if row is None:
                db.add(Snapshot(key=self.key, data=data))
            else:
                row.data = data
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or None when nothing was saved."""
        db = self._session_factory()
        try:
            row = db.get(Snapshot, self.key)
            if row is None:
                return None
            return dict(row.data)
        finally:
            db.close()

    def clear(self) -> None:
        """Delete the snapshot row if present."""
        db = self._session_factory()
        try:
            deleted = db.query(Snapshot).filter(Snapshot.key == self.key).delete()
            db.commit()
            logger.info(f"Cleared snapshot ({deleted} row(s))", extra={"snapshot_key": self.key})
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
