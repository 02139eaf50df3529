"""CLI entry point.

Usage:
    python -m domain_events.cli db init
    domain-events-cli db init
    domain-events-cli audit classify user.deleted auth.login
"""

from loguru import logger

import domain_events
from domain_events.cli.app import app
from domain_events.logging import setup_logging
from domain_events.settings import get_settings


def main() -> None:
    """CLI entry point with logging configuration."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.audit_log_path)
    logger.enable(domain_events.__name__)
    app()


if __name__ == "__main__":
    main()
