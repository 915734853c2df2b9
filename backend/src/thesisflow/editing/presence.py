"""In-memory tracker of who is currently editing which document.

One EditingPresenceTracker is built at application start and shared by
reference (``app.state.presence``). State is a map keyed by document id;
each document bucket holds per-user last-active timestamps and its own
lock, so two mutations of the same bucket never interleave while
different documents proceed independently. Idle entries are dropped by
``purge_idle``, which a background thread runs periodically. A bucket
exists only while it has editors: queries never create one, and a
bucket emptied by ``leave`` or ``purge_idle`` is dropped from the map.

Presence is advisory and lost on restart; it is never persisted.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional
from uuid import UUID

from ..observability.logging_config import get_logger
from ..observability.metrics import active_editors

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _DocumentPresence:
    """Editors of one document, guarded by the bucket's lock."""

    __slots__ = ("lock", "last_active", "retired")

    def __init__(self):
        self.lock = threading.Lock()
        self.last_active: Dict[UUID, datetime] = {}
        # Set once the bucket is dropped from the registry; joins must not use it
        self.retired = False


class EditingPresenceTracker:
    """Tracks live editors per document with idle expiry.

    Args:
        timeout_seconds: Inactivity after which an editor is considered gone
        clock: Callable returning the current aware datetime (tests inject one)

    Example:
        tracker = EditingPresenceTracker(timeout_seconds=300)
        tracker.join(document.id, user.id)
        if tracker.has_other_editors(document.id, other_user.id):
            ...
    """

    def __init__(self, timeout_seconds: int = 300, clock: Optional[Callable[[], datetime]] = None):
        self.timeout = timedelta(seconds=timeout_seconds)
        self._clock = clock or _utcnow
        self._registry_lock = threading.Lock()
        self._documents: Dict[UUID, _DocumentPresence] = {}
        self._stop_event = threading.Event()
        self._cleanup_thread: Optional[threading.Thread] = None

    def _bucket(self, document_id: UUID) -> _DocumentPresence:
        with self._registry_lock:
            bucket = self._documents.get(document_id)
            if bucket is None:
                bucket = _DocumentPresence()
                self._documents[document_id] = bucket
            return bucket

    def _existing_bucket(self, document_id: UUID) -> Optional[_DocumentPresence]:
        with self._registry_lock:
            return self._documents.get(document_id)

    def _discard_if_empty(self, document_id: UUID) -> None:
        """Drop the document's bucket if nobody is left in it.

        Lock order is registry, then bucket.
        """
        with self._registry_lock:
            bucket = self._documents.get(document_id)
            if bucket is None:
                return
            with bucket.lock:
                if not bucket.last_active:
                    bucket.retired = True
                    del self._documents[document_id]

    def _is_fresh(self, last_active: datetime, now: datetime) -> bool:
        return now - last_active < self.timeout

    def _update_gauge(self) -> None:
        active_editors.set(self.total_editors())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def join(self, document_id: UUID, user_id: UUID) -> None:
        """Mark ``user_id`` as editing ``document_id`` as of now."""
        while True:
            bucket = self._bucket(document_id)
            with bucket.lock:
                if not bucket.retired:
                    bucket.last_active[user_id] = self._clock()
                    break
        self._update_gauge()

    def touch(self, document_id: UUID, user_id: UUID) -> bool:
        """Refresh an existing editor's timestamp.

        Returns:
            bool: False if the user was not (or no longer) editing
        """
        bucket = self._existing_bucket(document_id)
        if bucket is None:
            return False
        with bucket.lock:
            if bucket.retired or user_id not in bucket.last_active:
                return False
            bucket.last_active[user_id] = self._clock()
            return True

    def leave(self, document_id: UUID, user_id: UUID) -> None:
        bucket = self._existing_bucket(document_id)
        if bucket is None:
            return
        with bucket.lock:
            bucket.last_active.pop(user_id, None)
            emptied = not bucket.last_active
        if emptied:
            self._discard_if_empty(document_id)
        self._update_gauge()

    def purge_idle(self, now: Optional[datetime] = None) -> int:
        """Drop editors idle for longer than the timeout, and empty buckets.

        Returns:
            int: Number of editor entries removed
        """
        now = now or self._clock()
        with self._registry_lock:
            buckets = list(self._documents.items())

        removed = 0
        emptied: List[UUID] = []
        for document_id, bucket in buckets:
            with bucket.lock:
                stale = [
                    user_id for user_id, last_active in bucket.last_active.items()
                    if not self._is_fresh(last_active, now)
                ]
                for user_id in stale:
                    del bucket.last_active[user_id]
                removed += len(stale)
                if not bucket.last_active:
                    emptied.append(document_id)

        for document_id in emptied:
            self._discard_if_empty(document_id)

        if removed:
            logger.info(f"Purged {removed} idle editor(s)")
        self._update_gauge()
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def editors(self, document_id: UUID) -> List[UUID]:
        """Users currently editing ``document_id`` (idle ones excluded)."""
        bucket = self._existing_bucket(document_id)
        if bucket is None:
            return []
        now = self._clock()
        with bucket.lock:
            return [
                user_id for user_id, last_active in bucket.last_active.items()
                if self._is_fresh(last_active, now)
            ]

    def is_editing(self, document_id: UUID, user_id: UUID) -> bool:
        return user_id in self.editors(document_id)

    def has_other_editors(self, document_id: UUID, user_id: UUID) -> bool:
        return any(editor != user_id for editor in self.editors(document_id))

    def tracked_documents(self) -> int:
        """Number of documents with at least one (possibly idle) editor."""
        with self._registry_lock:
            return len(self._documents)

    def total_editors(self) -> int:
        with self._registry_lock:
            buckets = list(self._documents.values())
        total = 0
        for bucket in buckets:
            with bucket.lock:
                total += len(bucket.last_active)
        return total

    # ------------------------------------------------------------------
    # Background cleanup
    # ------------------------------------------------------------------

    @property
    def cleanup_running(self) -> bool:
        return self._cleanup_thread is not None and self._cleanup_thread.is_alive()

    def start_cleanup(self, interval_seconds: int) -> None:
        """Start the daemon thread that calls purge_idle every interval."""
        if self.cleanup_running:
            return
        self._stop_event.clear()

        def _run():
            while not self._stop_event.wait(interval_seconds):
                self.purge_idle()

        self._cleanup_thread = threading.Thread(
            target=_run, name="editing-presence-cleanup", daemon=True
        )
        self._cleanup_thread.start()
        logger.info(f"Editing presence cleanup started (every {interval_seconds}s)")

    def stop_cleanup(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._cleanup_thread is not None:
            self._cleanup_thread.join(timeout)
            self._cleanup_thread = None
