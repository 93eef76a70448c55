"""Known continuation schemes for paginated transaction reports.

The Berlin Group standard leaves the shape of the "next" link open, so every
bank family encodes its continuation token under its own query parameter.
Each scheme names that parameter and whether the follow-up call must repeat
the original date range:

- ``scrollRef`` (Fiducia and friends): only one of ``dateFrom`` and
  ``scrollRef`` may be sent, so the date range is dropped.
- ``page`` (Commerzbank, aggregators): the follow-up call must be identical
  to the first one apart from the page, so the date range is replayed.

Schemes are tried in order; the first one that applies to the link wins.
Adding a bank means appending a scheme, not touching the engine.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlsplit

QueryParams = Mapping[str, list[str]]


@dataclass(frozen=True)
class ContinuationScheme:
    """How one bank family carries its continuation token."""

    query_parameter: str
    replay_date_range: bool
    applies: Optional[Callable[[QueryParams], bool]] = None

    def matches(self, query: QueryParams) -> bool:
        if self.query_parameter not in query:
            return False
        return self.applies is None or self.applies(query)

    def token(self, query: QueryParams) -> str:
        return query[self.query_parameter][0]


@dataclass(frozen=True)
class Continuation:
    """A resolved continuation: the scheme plus the decoded token."""

    scheme: ContinuationScheme
    token: str


SCROLL_REF = ContinuationScheme(query_parameter="scrollRef", replay_date_range=False)
PAGE = ContinuationScheme(query_parameter="page", replay_date_range=True)

DEFAULT_SCHEMES: tuple[ContinuationScheme, ...] = (SCROLL_REF, PAGE)


def parse_query(link: str) -> QueryParams:
    """Decoded query parameters of ``link`` (tokens may contain escapes)."""
    return parse_qs(urlsplit(link).query, keep_blank_values=True)


def resolve_continuation(
    next_link: str,
    schemes: Sequence[ContinuationScheme] = DEFAULT_SCHEMES,
) -> Continuation | None:
    """Find the first known scheme present in ``next_link``."""
    query = parse_query(next_link)
    for scheme in schemes:
        if scheme.matches(query):
            return Continuation(scheme=scheme, token=scheme.token(query))
    return None


def account_id_from_link(link: str) -> str | None:
    """Resource id following the last ``accounts`` path segment, if any."""
    segments = [s for s in urlsplit(link).path.split("/") if s]
    indices = [i for i, segment in enumerate(segments) if segment == "accounts"]
    if not indices or indices[-1] + 1 >= len(segments):
        return None
    return segments[indices[-1] + 1]
