"""Shared helpers for the opaque token stores."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from account_core.core.clock import normalize_to_utc
from account_core.services.errors import TokenExpiredError

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class IssuedToken(Generic[RecordT]):
    """A freshly minted token: the raw value is only available here."""

    value: str
    record: RecordT


def ensure_unexpired(expires_at: datetime, now: datetime, kind: str) -> None:
    """Raise ``TokenExpiredError`` once ``now`` reaches ``expires_at``."""

    if normalize_to_utc(now) >= normalize_to_utc(expires_at):
        raise TokenExpiredError(kind)


def append_query(base_url: str, **params: str) -> str:
    """Merge query parameters into a link, keeping existing ones."""

    split = urlsplit(base_url)
    query_params = dict(parse_qsl(split.query, keep_blank_values=True))
    query_params.update(params)
    return urlunsplit(
        (split.scheme, split.netloc, split.path, urlencode(query_params), split.fragment)
    )


__all__ = ["IssuedToken", "append_query", "ensure_unexpired"]
