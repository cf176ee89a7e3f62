"""
Shared dataclasses used across the fetch pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from f1viewer.exceptions import CatalogFetchError, ErrorKind


T = TypeVar("T")


@dataclass(slots=True)
class FetchResult(Generic[T]):
    """Outcome of fetching one child entity of an expansion."""
    identifier: str
    value: T | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, exc: CatalogFetchError) -> FetchResult[T]:
        return cls(identifier=exc.identifier, error=exc.kind, message=str(exc))


def count_failures(results: list[FetchResult]) -> int:
    return sum(1 for result in results if not result.ok)


__all__ = ["FetchResult", "count_failures"]
