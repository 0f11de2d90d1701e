"""
Pair construction.

Turns the configured source and destination lists into immutable
``SyncPairConfig`` objects and the unique ``RetentionTarget`` set.
"""

from __future__ import annotations

from collections.abc import Sequence

from pullcsv.core.config import ConfigurationError, RetentionConfig
from pullcsv.core.models import RetentionTarget, SyncPairConfig
from pullcsv.sync.naming import exclude_file_name
from pullcsv.sync.tokens import expand_date_variants


def build_sync_pairs(
    sources: Sequence[str],
    destinations: Sequence[str],
    pod_name: str,
    stand_name: str,
) -> list[SyncPairConfig]:
    """Expand date variants and derive an exclude-file name for every pair."""
    if len(sources) != len(destinations):
        raise ConfigurationError(
            "Number of items in DOWNLOAD_FROM and DOWNLOAD_TO must be equal!"
        )

    return [
        SyncPairConfig(
            source_template=source,
            dest_dir=destination,
            exclude_file_name=exclude_file_name(pod_name, stand_name, source, destination),
        )
        for source, destination in expand_date_variants(zip(sources, destinations))
    ]


def unique_destinations(pairs: Sequence[SyncPairConfig]) -> list[str]:
    """Destinations in first-seen order, without repeats."""
    return list(dict.fromkeys(pair.dest_dir for pair in pairs))


def build_retention_targets(
    pairs: Sequence[SyncPairConfig], config: RetentionConfig
) -> list[RetentionTarget]:
    return [
        RetentionTarget(
            directory=directory,
            max_age_complete_hours=config.max_age_complete_hours,
            max_age_partial_hours=config.max_age_partial_hours,
            partial_pattern=config.partial_pattern,
        )
        for directory in unique_destinations(pairs)
    ]
