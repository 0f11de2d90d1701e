"""
pullcsv - scheduled rsync mirroring with shared exclude lists.

Pulls files from remote rsync sources into local directories on a cron
schedule, keeping a per-pair exclude list on the remote side so files are
not downloaded twice, and sweeps aged files from the destinations.
"""

__version__ = "2.0.1"
__author__ = "pullcsv Team"

__all__ = ["__version__"]
