import os
import logging
import pytz
from datetime import datetime


class LocalTimeFormatter(logging.Formatter):
    def __init__(self, fmt=None, datefmt=None, tz_name='Asia/Manila'):
        super().__init__(fmt=fmt, datefmt=datefmt)
        try:
            self.tz = pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError:
            self.tz = pytz.utc

    def formatTime(self, record, datefmt=None):
        record_time = datetime.fromtimestamp(record.created, self.tz)
        return record_time.strftime(datefmt) if datefmt else record_time.isoformat()


def setup_logging():
    logger = logging.getLogger()
    if not any(isinstance(h.formatter, LocalTimeFormatter) for h in logger.handlers):
        formatter = LocalTimeFormatter(
            fmt='%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            tz_name=os.environ.get('LOG_TIMEZONE', 'Asia/Manila')
        )

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        logger.setLevel(getattr(logging, os.environ.get('LOG_LEVEL', 'INFO').upper(), logging.INFO))
        logger.addHandler(handler)

    return logger
