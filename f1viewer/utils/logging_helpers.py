"""
Structured logging helpers for consistent log formatting.

Provides utilities for logging tree expansions and command runs in one shape.
"""
import logging


def log_expansion_start(logger: logging.Logger, kind: str, label: str) -> None:
    """
    Log the start of a node expansion.

    Args:
        logger: Logger instance
        kind: Node kind being expanded (category, season, ...)
        label: Node label
    """
    logger.info("Loading %s: %s", kind, label)


def log_expansion_end(logger: logging.Logger, kind: str, label: str, children: int) -> None:
    """
    Log the end of a node expansion.

    Args:
        logger: Logger instance
        kind: Node kind that was expanded
        label: Node label
        children: Number of attached children
    """
    if children:
        logger.info("Loaded %s: %s (%s children)", kind, label, children)
    else:
        logger.warning("No content for %s: %s", kind, label)


def log_fetch_summary(logger: logging.Logger, kind: str, succeeded: int, failed: int) -> None:
    """
    Log how many child fetches of one expansion succeeded.

    Args:
        logger: Logger instance
        kind: Entity kind fetched
        succeeded: Successful fetches
        failed: Failed fetches (omitted or substituted)
    """
    if failed:
        logger.warning("Fetched %s %s record(s), %s failed", succeeded, kind, failed)
    else:
        logger.debug("Fetched %s %s record(s)", succeeded, kind)


def log_command_start(logger: logging.Logger, argv: list[str]) -> None:
    """Log an external command launch."""
    logger.info("starting: %s", " ".join(argv))
