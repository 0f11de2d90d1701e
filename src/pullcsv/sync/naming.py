"""
Exclude-file naming.

Every instance owns a disjoint set of exclude files on the remote side. The
name is derived from the deployment (pod name without its replica-set and
pod hashes), the remote path, the stand and the local destination, so it is
stable across restarts and replicas of the same deployment.
"""

from __future__ import annotations

import re
from pathlib import Path

from pullcsv.core.config import ConfigurationError

POD_NAME_RE = re.compile(r"(.+)-([a-z0-9]{8,10}-[a-z0-9]{5})")
REMOTE_SUBPATH_RE = re.compile(r"(rsync.+@.+)(/[a-z].+/.+$)")
REMOTE_PREFIX_RE = re.compile(r"rsync.+@[a-zA-Z0-9_.:-]+/")


class NamingError(ConfigurationError):
    """Raised when an exclude-file name cannot be derived."""


def deployment_name(pod_name: str) -> str:
    """Strip the replica-set and pod hashes: ``myapp-5448486d5c-qjpvq`` -> ``myapp``."""
    match = POD_NAME_RE.fullmatch(pod_name)
    if match is None:
        raise NamingError(f"Couldn't get deployment name from pod name {pod_name!r}")
    return match.group(1)


def remote_subpath(source_template: str) -> str:
    """The path on the rsync server below the host and module."""
    match = REMOTE_SUBPATH_RE.search(source_template)
    if match is None:
        raise NamingError(
            f"Couldn't get full OS path on rsyncd server from {source_template!r}"
        )
    return match.group(2)


def exclude_file_name(
    pod_name: str, stand_name: str, source_template: str, dest_dir: str
) -> str:
    """
    Derive the exclude-file name for one pair.

    ``{deployment}{remote subpath}-{stand}{destination}-excludeFile`` with
    slashes turned into underscores and wildcards dropped from the remote
    subpath.
    """
    subpath = remote_subpath(source_template).replace("/", "_").replace("*", "")
    destination = dest_dir.replace("/", "_")
    return f"{deployment_name(pod_name)}{subpath}-{stand_name}{destination}-excludeFile"


def remote_exclude_path(source_template: str, file_name: str, directory: str) -> str:
    """``rsync://user@host/`` of the source, then the exclude directory and file."""
    match = REMOTE_PREFIX_RE.search(source_template)
    if match is None:
        raise NamingError(f"Couldn't get rsync host prefix from {source_template!r}")
    return f"{match.group(0)}{directory}/{file_name}"


def local_exclude_path(file_name: str, directory: Path) -> Path:
    return directory / file_name
