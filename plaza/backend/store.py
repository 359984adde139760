"""Storage interface and in-memory implementation for user records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Protocol

from plaza.backend.models import UserRecord


class UserStore(Protocol):
    def get(self, user_id: str) -> UserRecord | None:
        """Return the record for ``user_id`` or ``None``."""

    def add(self, record: UserRecord) -> UserRecord:
        """Insert a new record and return it."""

    def records(self) -> Iterator[UserRecord]:
        """Iterate records in insertion order."""

    def __len__(self) -> int:
        """Return the number of stored records."""


@dataclass
class InMemoryUserStore:
    """Process-local store. Empty on creation; records are never removed."""

    def __post_init__(self) -> None:
        self._records: dict[str, UserRecord] = {}

    def get(self, user_id: str) -> UserRecord | None:
        return self._records.get(user_id)

    def add(self, record: UserRecord) -> UserRecord:
        if record.user_id in self._records:
            raise ValueError(f"User already exists: {record.user_id}")
        self._records[record.user_id] = record
        return record

    def records(self) -> Iterator[UserRecord]:
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)


def create_store() -> UserStore:
    return InMemoryUserStore()
