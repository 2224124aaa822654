"""Error taxonomy for the record sync engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class HubError(Exception):
    message: str

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return self.message


@dataclass
class RemoteError(HubError):
    status: int | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.message} (status={self.status})" if self.status is not None else self.message


@dataclass
class WriteFailure(HubError):
    record_id: str | None = None


@dataclass
class EditStateError(HubError):
    pass


@dataclass
class FillError(HubError):
    pass


@dataclass
class ValidationFailure(HubError):
    missing: List[str] = field(default_factory=list)
