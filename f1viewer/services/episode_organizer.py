"""
Episode Organizer

Groups episodes of a VOD category into year buckets using the year/race
code at the start of their data source identifier.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Sequence

from f1viewer.schemas import Episode


logger = logging.getLogger(__name__)

_YEAR_RACE_CODE = re.compile(r"^[0-9]{4}")

# Identifiers of these seasons start with the full year instead of a year/race code
FULL_YEAR_PREFIXES = frozenset({"2018", "2019"})
FULL_YEAR_RACE_NUMBER = "0"

# TODO: two-digit years from 30 upwards map to the 1900s; move the pivot before 2030
CENTURY_PIVOT = 30


@dataclass(slots=True)
class YearBucket:
    year: str
    episodes: list[Episode] = field(default_factory=list)


@dataclass(slots=True)
class OrganizedEpisodes:
    """Year buckets in display order followed by episodes without a code."""
    buckets: list[YearBucket] = field(default_factory=list)
    residual: list[Episode] = field(default_factory=list)

    def __len__(self) -> int:
        return sum(len(bucket.episodes) for bucket in self.buckets) + len(self.residual)


def parse_year_and_race(source_id: str) -> tuple[str, str] | None:
    """
    Extract the full year and race number from a data source identifier

    Args:
        source_id: Identifier such as '19050123' (2019, race 05) or '20181234'

    Returns:
        Tuple of (year, race number), or None when the identifier does not
        start with four digits
    """
    if not _YEAR_RACE_CODE.match(source_id):
        return None

    token = source_id[:4]
    if token in FULL_YEAR_PREFIXES:
        return token, FULL_YEAR_RACE_NUMBER

    two_digit_year = source_id[:2]
    if int(two_digit_year) < CENTURY_PIVOT:
        full_year = "20" + two_digit_year
    else:
        full_year = "19" + two_digit_year
    return full_year, source_id[2:4]


def organize(episodes: Sequence[Episode]) -> OrganizedEpisodes:
    """
    Split episodes into chronologically ordered year buckets and a residual list

    Dated episodes are ordered by (year, race number), ties broken by title.
    Buckets appear in the order their first episode is met in that sequence.
    Episodes without a year/race code are ordered by title and kept apart.

    Args:
        episodes: Episodes in any order

    Returns:
        OrganizedEpisodes with buckets and residual episodes
    """
    dated: list[tuple[tuple[str, str, str], Episode]] = []
    residual: list[Episode] = []

    for episode in episodes:
        code = parse_year_and_race(episode.data_source_id)
        if code is None:
            residual.append(episode)
            continue
        year, race = code
        dated.append(((year, race, episode.title), episode))

    dated.sort(key=lambda item: item[0])
    residual.sort(key=lambda episode: episode.title)

    result = OrganizedEpisodes(residual=residual)
    buckets: dict[str, YearBucket] = {}
    for (year, _race, _title), episode in dated:
        bucket = buckets.get(year)
        if bucket is None:
            bucket = YearBucket(year=year)
            buckets[year] = bucket
            result.buckets.append(bucket)
        bucket.episodes.append(episode)

    logger.debug(
        "Organized %s episodes into %s year bucket(s), %s without year/race code",
        len(episodes),
        len(result.buckets),
        len(residual),
    )
    return result
