"""Lifecycle state for requests to external services"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RequestStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RequestState:
    """
    State of one async boundary.

    ``sequence`` increases with every request started; a response is only
    current if it carries the latest sequence.
    """
    status: RequestStatus = RequestStatus.IDLE
    sequence: int = 0
    error: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def start(self) -> int:
        """Begin a request and return its sequence number"""
        self.sequence += 1
        self.status = RequestStatus.PENDING
        self.error = None
        self.updated_at = datetime.utcnow()
        return self.sequence

    def is_current(self, sequence: int) -> bool:
        return sequence == self.sequence

    def supersede(self) -> None:
        """Invalidate any request in flight without starting a new one"""
        self.sequence += 1
        if self.status == RequestStatus.PENDING:
            self.status = RequestStatus.IDLE
        self.updated_at = datetime.utcnow()

    def succeed(self) -> None:
        self.status = RequestStatus.SUCCEEDED
        self.error = None
        self.updated_at = datetime.utcnow()

    def fail(self, error: str) -> None:
        self.status = RequestStatus.FAILED
        self.error = error
        self.updated_at = datetime.utcnow()

    def reset(self) -> None:
        self.status = RequestStatus.IDLE
        self.error = None
        self.updated_at = datetime.utcnow()
