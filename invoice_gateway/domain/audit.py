"""Append-only audit log of engine computations"""

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuditEntry:
    """One recorded step: inputs (details) and outputs (result) of an operation"""

    computation_id: str
    card_id: Optional[str]
    operation: str
    details: Dict[str, Any]
    result: Dict[str, Any]
    recorded_at: datetime


class AuditTrail:
    """
    Ordered entries of a single computation.

    Not shared between threads; each build gets its own trail and hands it to
    AuditLog.commit() when done, so its entries stay contiguous and in call order.
    """

    def __init__(self, card_id: Optional[str] = None, clock: Optional[Clock] = None):
        self.computation_id = str(uuid.uuid4())
        self.card_id = card_id
        self.clock = clock or _utc_now
        self.entries: List[AuditEntry] = []

    def record(self, operation: str, details: Dict[str, Any], result: Dict[str, Any]) -> AuditEntry:
        entry = AuditEntry(
            computation_id=self.computation_id,
            card_id=self.card_id,
            operation=operation,
            details=details,
            result=result,
            recorded_at=self.clock(),
        )
        self.entries.append(entry)
        logger.info(
            f"[AUDIT][{operation}]",
            extra={
                "computation_id": self.computation_id,
                "card_id": self.card_id,
                "details": details,
                "result": result,
            },
        )
        return entry


class AuditLog:
    """
    Process-wide append-only store of audit entries.

    Safe for concurrent commits. The optional sink receives every committed
    batch (e.g. to persist it) while the lock is held, so sink order matches
    log order.
    """

    def __init__(self, sink: Optional[Callable[[List[AuditEntry]], None]] = None):
        self._entries: List[AuditEntry] = []
        self._lock = threading.Lock()
        self.sink = sink

    def commit(self, trail: AuditTrail) -> None:
        batch = list(trail.entries)
        if not batch:
            return
        with self._lock:
            self._entries.extend(batch)
            if self.sink is not None:
                self.sink(batch)

    def entries(self, card_id: Optional[str] = None) -> List[AuditEntry]:
        with self._lock:
            if card_id is None:
                return list(self._entries)
            return [entry for entry in self._entries if entry.card_id == card_id]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
