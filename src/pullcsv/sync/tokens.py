"""
Relative-date tokens in source templates.

Templates are resolved when a job fires, not when it is configured, so a
long-running process always asks for the current day's files.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time, timedelta
from enum import Enum

# Upstream batches for "today" are not published at midnight sharp.
TODAY_CUTOVER = time(0, 11)


class DateToken(Enum):
    """Supported tokens, declared in substitution priority order."""

    YESTERDAY = "_YESTERDAY_"
    YESTERDAY_DASHED = "_YES-TER-DAY_"
    TODAY = "_TODAY_"
    TODAY_DASHED = "_TO-DAY_"

    @property
    def date_format(self) -> str:
        if self in (DateToken.YESTERDAY_DASHED, DateToken.TODAY_DASHED):
            return "%Y-%m-%d"
        return "%Y%m%d"

    @property
    def is_yesterday(self) -> bool:
        return self in (DateToken.YESTERDAY, DateToken.YESTERDAY_DASHED)


# Config-time duplication: compact token -> dashed variant.
DASHED_VARIANTS = {
    DateToken.TODAY: DateToken.TODAY_DASHED,
    DateToken.YESTERDAY: DateToken.YESTERDAY_DASHED,
}


def find_token(template: str) -> DateToken | None:
    """Return the highest-priority token present in ``template``."""
    for token in DateToken:
        if token.value in template:
            return token
    return None


def token_date(token: DateToken, now: datetime) -> datetime:
    """The calendar day a token stands for at ``now``."""
    yesterday = now - timedelta(days=1)
    if token.is_yesterday:
        return yesterday
    if now.time() < TODAY_CUTOVER:
        return yesterday
    return now


def resolve(template: str, now: datetime | None = None) -> str:
    """
    Substitute the date token in ``template``.

    Only one token kind is replaced (every occurrence of it); a template
    carrying several kinds keeps the lower-priority ones verbatim.
    """
    token = find_token(template)
    if token is None:
        return template
    now = now or datetime.now()
    return template.replace(token.value, token_date(token, now).strftime(token.date_format))


def expand_date_variants(pairs: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """
    Append a dashed-date variant for every compact-token template.

    ``[("a/_TODAY_", "/d/")]`` becomes
    ``[("a/_TODAY_", "/d/"), ("a/_TO-DAY_", "/d/")]``. Only the original
    entries are scanned.
    """
    original = list(pairs)
    additions: list[tuple[str, str]] = []
    for source, destination in original:
        for compact, dashed in DASHED_VARIANTS.items():
            if compact.value in source:
                additions.append((source.replace(compact.value, dashed.value), destination))
    return original + additions
