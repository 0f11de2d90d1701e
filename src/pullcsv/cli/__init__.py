"""
pullcsv CLI Module.

Provides the command-line entry point of the service.
"""

from pullcsv.cli.main import main, cli

__all__ = ["main", "cli"]
