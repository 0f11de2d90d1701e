"""
pullcsv sync module.

Provides the per-pair sync cycle, exclude lists, token resolution and
retention sweeping.
"""

from pullcsv.sync.excludes import ExcludeFile, merge, truncate
from pullcsv.sync.jobs import RetentionJob, SyncJob
from pullcsv.sync.naming import NamingError, exclude_file_name
from pullcsv.sync.tokens import expand_date_variants, resolve
from pullcsv.sync.transfer import RsyncTransfer

__all__ = [
    "ExcludeFile",
    "merge",
    "truncate",
    "RetentionJob",
    "SyncJob",
    "NamingError",
    "exclude_file_name",
    "expand_date_variants",
    "resolve",
    "RsyncTransfer",
]
