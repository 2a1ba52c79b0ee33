from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from windshaft.config import MAP_INSTANTIATION_LIMIT, TRACKER_MAX_FINGERPRINTS
from windshaft.request import Request


@dataclass
class RequestRecord:
    fingerprint: str
    occurrences: int = 0
    last_response: Any = None


class RequestTracker:
    """
    Bounded record of recent request fingerprints and their outcomes.

    `limit` caps how many times an identical request may be sent. Records are kept
    in first-seen order; once more than `max_fingerprints` distinct requests have
    been seen, the oldest ones are dropped.
    """

    def __init__(
        self,
        limit: int = MAP_INSTANTIATION_LIMIT,
        *,
        max_fingerprints: int = TRACKER_MAX_FINGERPRINTS,
    ) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        if max_fingerprints < 1:
            raise ValueError(f"max_fingerprints must be >= 1, got {max_fingerprints}")
        self.limit = int(limit)
        self.max_fingerprints = int(max_fingerprints)
        self._records: dict[str, RequestRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def can_request_be_performed(self, request: Request) -> bool:
        return self.occurrences(request) < self.limit

    def track(self, request: Request, response: Any) -> RequestRecord:
        key = request.fingerprint
        record = self._records.get(key)
        if record is None:
            record = RequestRecord(fingerprint=key)
            self._records[key] = record
        record.occurrences += 1
        record.last_response = response

        while len(self._records) > self.max_fingerprints:
            oldest = next(iter(self._records))
            if oldest == key:
                break
            self._records.pop(oldest, None)
        return record

    def occurrences(self, request: Request) -> int:
        record = self._records.get(request.fingerprint)
        return record.occurrences if record is not None else 0

    def last_response(self, request: Request) -> Any:
        record = self._records.get(request.fingerprint)
        return record.last_response if record is not None else None

    def reset(self) -> None:
        self._records.clear()
