import logging
import sys
from typing import Optional

from core.environment import get_env_bool

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [building %(building_id)s] %(message)s'

# Third-party loggers that are only useful at WARNING and above
QUIET_LOGGERS = ('urllib3', 'httpx', 'httpcore', 'botocore', 'boto3', 's3transfer', 'openai', 'aiosqlite')


class BuildingContextFilter(logging.Filter):
    """Default building_id for records logged outside an audit step"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'building_id'):
            record.building_id = '-'
        return True


def setup_logging(debug: Optional[bool] = None) -> None:
    """Configure stdout logging for the API process"""
    if debug is None:
        debug = get_env_bool("DEBUG")
    log_level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(BuildingContextFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=log_level, handlers=[handler])

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
