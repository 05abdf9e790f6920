"""Path-addressed realtime document store.

Records live at ``<collection>/<key>``. Reading or subscribing to a bare
``<collection>`` path yields a mapping of key to record (``None`` when the
collection is empty), reading a record path yields the record dict or
``None``.

Writes are serialized by a single re-entrant lock. Once a write is committed,
every subscription whose path overlaps the written path receives a fresh
snapshot, synchronously on the writer's thread. Subscribing delivers the
current snapshot immediately.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, sessionmaker

from campus_monitor import models
from campus_monitor.core.database import SessionLocal
from campus_monitor.core.monitoring import ACTIVE_SUBSCRIPTIONS, STORE_WRITES

logger = logging.getLogger(__name__)

# Characters the hosted realtime database refuses in keys
FORBIDDEN_KEY_CHARS = frozenset(".#$[]")


def split_path(path: str) -> Tuple[str, Optional[str]]:
    """Split ``collection[/key]`` into its parts, rejecting anything deeper."""
    parts = (path or "").split("/")
    if len(parts) > 2 or any(not p for p in parts):
        raise ValueError(f"Invalid store path: {path!r}")
    bad = [p for p in parts if FORBIDDEN_KEY_CHARS.intersection(p)]
    if bad:
        raise ValueError(f"Invalid store path: {path!r} (keys may not contain . # $ [ ])")
    return parts[0], (parts[1] if len(parts) == 2 else None)


@dataclass(frozen=True)
class Snapshot:
    path: str
    value: Any

    @property
    def key(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def exists(self) -> bool:
        return self.value is not None


class Subscription:
    """Handle for one live subscription; ``cancel()`` is idempotent."""

    def __init__(self, store: "RealtimeStore", path: str, callback: Callable[[Snapshot], None]):
        self.store = store
        self.collection, self.key = split_path(path)
        self.path = self.collection if self.key is None else f"{self.collection}/{self.key}"
        self.callback = callback
        self.active = True

    def overlaps(self, collection: str, key: Optional[str]) -> bool:
        if collection != self.collection:
            return False
        return key is None or self.key is None or key == self.key

    def deliver(self, snapshot: Snapshot) -> None:
        if self.active:
            self.callback(snapshot)

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self.store._unsubscribe(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cancel()


class RealtimeStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._subscriptions: List[Subscription] = []

    # ---------------------- Reads ----------------------

    def get(self, path: str) -> Any:
        collection, key = split_path(path)
        with self._lock, self._session_factory() as db:
            return self._read(db, collection, key)

    @staticmethod
    def _read(db: Session, collection: str, key: Optional[str]) -> Any:
        if key is not None:
            doc = db.get(models.Document, (collection, key))
            return dict(doc.data) if doc is not None else None
        docs = (
            db.query(models.Document)
            .filter(models.Document.collection == collection)
            .order_by(models.Document.key.asc())
            .all()
        )
        return {d.key: dict(d.data) for d in docs} or None

    # ---------------------- Writes ----------------------

    def set(self, path: str, value: Any) -> None:
        """Replace whatever lives at ``path``; ``None`` deletes it."""
        collection, key = split_path(path)
        with self._lock:
            with self._session_factory() as db:
                if key is None:
                    db.query(models.Document).filter(models.Document.collection == collection).delete()
                    for child, record in (value or {}).items():
                        split_path(f"{collection}/{child}")
                        db.add(models.Document(collection=collection, key=child, data=dict(record)))
                else:
                    self._put(db, collection, key, value)
                db.commit()
            STORE_WRITES.labels(operation="remove" if value is None else "set").inc()
            logger.debug("set %s", path)
            self._notify(collection, key)

    def update(self, path: str, values: Dict[str, Any]) -> Any:
        """Merge ``values`` into the record at ``path`` and return the result.

        On a record path, fields set to ``None`` are removed and a missing
        record is created from ``values``. On a collection path, ``values`` maps
        keys to full records and each listed child is replaced; other children
        are left alone.
        """
        collection, key = split_path(path)
        with self._lock:
            with self._session_factory() as db:
                if key is None:
                    for child, record in values.items():
                        split_path(f"{collection}/{child}")
                        self._put(db, collection, child, record)
                else:
                    doc = db.get(models.Document, (collection, key))
                    merged = dict(doc.data) if doc is not None else {}
                    merged.update(values)
                    merged = {k: v for k, v in merged.items() if v is not None}
                    self._put(db, collection, key, merged or None)
                db.commit()
                result = self._read(db, collection, key)
            STORE_WRITES.labels(operation="update").inc()
            logger.debug("update %s fields=%s", path, sorted(values))
            self._notify(collection, key)
        return result

    def remove(self, path: str) -> None:
        self.set(path, None)

    def transaction(self, path: str, apply: Callable[[Optional[dict]], Optional[dict]]) -> Optional[dict]:
        """Read-modify-write one record under the write lock.

        ``apply`` receives the current record (or ``None``) and returns the new
        record; returning ``None`` aborts without writing. Exceptions raised by
        ``apply`` propagate and nothing is written.
        """
        collection, key = split_path(path)
        if key is None:
            raise ValueError(f"Transactions run on a single record, got {path!r}")
        with self._lock:
            with self._session_factory() as db:
                doc = db.get(models.Document, (collection, key))
                current = dict(doc.data) if doc is not None else None
                new_value = apply(current)
                if new_value is None:
                    return None
                self._put(db, collection, key, new_value)
                db.commit()
            STORE_WRITES.labels(operation="transaction").inc()
            self._notify(collection, key)
        return dict(new_value)

    @staticmethod
    def _put(db: Session, collection: str, key: str, value: Optional[dict]) -> None:
        doc = db.get(models.Document, (collection, key))
        if value is None:
            if doc is not None:
                db.delete(doc)
        elif doc is None:
            db.add(models.Document(collection=collection, key=key, data=dict(value)))
        else:
            doc.data = dict(value)

    # ---------------------- Subscriptions ----------------------

    def subscribe(self, path: str, callback: Callable[[Snapshot], None]) -> Subscription:
        subscription = Subscription(self, path, callback)
        with self._lock:
            self._subscriptions.append(subscription)
            ACTIVE_SUBSCRIPTIONS.inc()
            try:
                subscription.deliver(Snapshot(subscription.path, self.get(path)))
            except Exception:
                subscription.cancel()
                raise
        logger.debug("subscribed to %s", path)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
                ACTIVE_SUBSCRIPTIONS.dec()
        logger.debug("unsubscribed from %s", subscription.path)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _notify(self, collection: str, key: Optional[str]) -> None:
        targets = [s for s in self._subscriptions if s.overlaps(collection, key)]
        if not targets:
            return
        values: Dict[str, Any] = {}
        with self._session_factory() as db:
            for sub in targets:
                if sub.path not in values:
                    values[sub.path] = self._read(db, sub.collection, sub.key)
        for sub in targets:
            try:
                sub.deliver(Snapshot(sub.path, values[sub.path]))
            except Exception:
                logger.exception("Subscriber callback failed for %s", sub.path)


_store: Optional[RealtimeStore] = None


def get_store() -> RealtimeStore:
    global _store
    if _store is None:
        _store = RealtimeStore(SessionLocal)
    return _store
