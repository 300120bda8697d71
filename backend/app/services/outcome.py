from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of an external lookup that always carries a usable value.

    `ok=False` means `value` is the deterministic fallback and `error_code`
    names the failure that triggered it.
    """

    value: T
    ok: bool
    error_code: str | None = None

    @classmethod
    def succeeded(cls, value: T) -> Outcome[T]:
        return cls(value=value, ok=True)

    @classmethod
    def degraded(cls, fallback: T, *, error_code: str) -> Outcome[T]:
        return cls(value=fallback, ok=False, error_code=error_code)
