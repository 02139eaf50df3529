"""CLI module for domain-events.

Provides command-line tools for the audit store.
"""

from domain_events.cli.app import app

__all__ = ["app"]
