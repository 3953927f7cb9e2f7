"""Process-wide store of pending operations with TTL-based eviction.

The registry is the only owner of the backing dict; every read and write goes
through a single lock so a sweep (possibly on a timer thread) cannot interleave
with a revise or a confirm targeting the same id.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import secrets
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from config import DEFAULT_TTL_SECONDS
from core import OperationNotFoundError, PendingOperation

ID_PREFIX = "preview_"

logger = logging.getLogger("preview_gate.registry")


def generate_operation_id() -> str:
    """128-bit random token."""
    return f"{ID_PREFIX}{secrets.token_hex(16)}"


def _snapshot(item: PendingOperation) -> PendingOperation:
    return dataclasses.replace(item, original_args=copy.deepcopy(item.original_args))


class OperationRegistry:
    """Keyed store `id -> PendingOperation` with a fixed TTL."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = generate_operation_id,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.Lock()
        self._items: Dict[str, PendingOperation] = {}
        self._sweeper: Optional[threading.Thread] = None
        self._sweeper_stop = threading.Event()

    def now(self) -> float:
        return float(self._clock())

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, tool_name: str, type: str, args: Dict[str, Any], preview: str) -> str:
        self.sweep()
        with self._lock:
            now = self.now()
            op_id = self._id_factory()
            while op_id in self._items:
                op_id = self._id_factory()
            self._items[op_id] = PendingOperation(
                id=op_id,
                tool_name=tool_name,
                type=type,
                original_args=copy.deepcopy(dict(args or {})),
                preview_text=preview,
                created_at=now,
                expires_at=now + self.ttl_seconds,
            )
        logger.debug("pending operation %s created (%s)", op_id, tool_name)
        return op_id

    def get(self, operation_id: str) -> Optional[PendingOperation]:
        """Return a copy of the stored entity or None; expired entries read as missing.

        Changes go through `update`; mutating the returned copy does not touch the store.
        """
        with self._lock:
            item = self._items.get(operation_id)
            if item is None:
                return None
            if item.is_expired(self.now()):
                del self._items[operation_id]
                logger.debug("pending operation %s expired on read", operation_id)
                return None
            return _snapshot(item)

    def require(self, operation_id: str) -> PendingOperation:
        item = self.get(operation_id)
        if item is None:
            raise OperationNotFoundError(operation_id)
        return item

    def update(self, operation_id: str, new_args: Dict[str, Any], new_preview: str) -> bool:
        """Replace args and preview together. The expiry is left untouched."""
        with self._lock:
            item = self._items.get(operation_id)
            if item is None or item.is_expired(self.now()):
                self._items.pop(operation_id, None)
                return False
            item.original_args = copy.deepcopy(dict(new_args or {}))
            item.preview_text = new_preview
        logger.debug("pending operation %s revised", operation_id)
        return True

    def remove(self, operation_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(operation_id, None) is not None
        if removed:
            logger.debug("pending operation %s removed", operation_id)
        return removed

    def list_pending(self) -> List[PendingOperation]:
        with self._lock:
            now = self.now()
            live = [_snapshot(item) for item in self._items.values() if not item.is_expired(now)]
        return sorted(live, key=lambda item: item.created_at)

    def sweep(self) -> int:
        """Drop every entry with expires_at <= now; return how many were dropped."""
        with self._lock:
            now = self.now()
            expired = [op_id for op_id, item in self._items.items() if item.is_expired(now)]
            for op_id in expired:
                del self._items[op_id]
        if expired:
            logger.info("swept %s expired pending operation(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self.list_pending())

    def __contains__(self, operation_id: object) -> bool:
        return isinstance(operation_id, str) and self.get(operation_id) is not None

    # ------------------------------------------------------------------
    # Background sweeper
    # ------------------------------------------------------------------

    def start_sweeper(self, interval: float = 60.0) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._sweeper_stop.clear()

        def loop() -> None:
            while not self._sweeper_stop.wait(interval):
                try:
                    self.sweep()
                except Exception as exc:  # pragma: no cover
                    logger.warning("pending operation sweep failed: %s", exc)

        self._sweeper = threading.Thread(target=loop, name="preview-gate-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._sweeper_stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
        self._sweeper = None
