"""
Shared helpers: logging setup and calendar arithmetic.
"""
import calendar
import logging
from datetime import datetime, timezone

from myradio.core import config


_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Return a module logger, configuring the root "myradio" logger on first use.

    Usage:
        log = get_logger(__name__)
        log.info("Loaded %d rules", len(rules))
    """
    global _configured
    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        root = logging.getLogger("myradio")
        root.addHandler(handler)
        root.setLevel(config.LOG_LEVEL.upper())
        _configured = True
    return logging.getLogger(name)


def utcnow() -> datetime:
    """Naive UTC now, matching the naive timestamps stored by the models."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def months_before(moment: datetime, months: int) -> datetime:
    """
    Step back a number of calendar months, clamping the day to the target month.

    Matches PostgreSQL's ``timestamp - interval 'N months'``:
    2024-03-31 minus one month is 2024-02-29.
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
