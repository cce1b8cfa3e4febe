"""Discriminated workflow outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar, Union

from account_core.services.errors import AuthError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Completed workflow. A ``None`` value means there was nothing to do."""

    value: T
    ok: Literal[True] = True


@dataclass(frozen=True)
class Failure:
    """Workflow aborted with a typed error; no side effects were committed."""

    error: AuthError
    ok: Literal[False] = False

    @property
    def code(self) -> str:
        return self.error.code


Result = Union[Success[T], Failure]


__all__ = ["Failure", "Result", "Success"]
