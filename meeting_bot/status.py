# FilePath: "/meeting_bot/status.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Lifecycle status vocabularies and the append-only status history.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Type, TypeVar


class BotStatus(Enum):
    """Statuses recorded by the Orchestrator for one bot instance"""
    UNKNOWN = "unknown"
    INITIALIZING = "initializing"
    LAUNCHING = "launching"
    JOINING = "joining"
    IN_WAITING_ROOM = "in_waiting_room"
    IN_CALL_NOT_RECORDING = "in_call_not_recording"
    JOINED = "joined"
    CALL_ENDED = "call_ended"
    DONE = "done"
    FATAL = "fatal"


class JoinStatus(Enum):
    """Statuses recorded by the join procedure"""
    UNKNOWN = "unknown"
    INITIALIZING = "initializing"
    JOINING = "joining"
    IN_WAITING_ROOM = "in_waiting_room"
    JOINED = "joined"
    FATAL = "fatal"


# Join sub-statuses that the Orchestrator mirrors into its own history.
JOIN_TO_BOT_STATUS: Dict[JoinStatus, BotStatus] = {
    JoinStatus.UNKNOWN: BotStatus.UNKNOWN,
    JoinStatus.INITIALIZING: BotStatus.INITIALIZING,
    JoinStatus.JOINING: BotStatus.JOINING,
    JoinStatus.IN_WAITING_ROOM: BotStatus.IN_WAITING_ROOM,
    JoinStatus.JOINED: BotStatus.JOINED,
    JoinStatus.FATAL: BotStatus.FATAL,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class StatusChange:
    """One entry of a status history. Immutable once created."""
    status: Enum
    sub_code: Optional[str] = None
    message: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "subCode": self.sub_code,
            "message": self.message,
            "createdAt": self.created_at.isoformat(),
        }


class StatusHistory(Generic[S]):
    """
    Append-only, timestamp-ordered record of status changes.

    The history is the authoritative lifecycle record of its owner. Entries are
    never removed or rewritten; after every append the sequence is re-sorted by
    ``created_at`` (stable, so equal timestamps keep their append order).
    """

    def __init__(self, status_type: Type[S], clock: Callable[[], datetime] = utcnow):
        self.status_type = status_type
        self._clock = clock
        self._changes: List[StatusChange] = []

    def append(self, status: S, sub_code: Optional[str] = None, message: Optional[str] = None) -> StatusChange:
        if not isinstance(status, self.status_type):
            raise TypeError(f"{status!r} is not a {self.status_type.__name__}")

        change = StatusChange(status=status, sub_code=sub_code, message=message, created_at=self._clock())
        self._changes.append(change)
        self._changes.sort(key=lambda c: c.created_at)
        return change

    @property
    def latest(self) -> Optional[StatusChange]:
        return self._changes[-1] if self._changes else None

    def contains(self, status: S) -> bool:
        return any(c.status == status for c in self._changes)

    def statuses(self) -> List[S]:
        return [c.status for c in self._changes]

    def to_list(self) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self._changes]

    def __iter__(self) -> Iterator[StatusChange]:
        return iter(list(self._changes))

    def __len__(self) -> int:
        return len(self._changes)
