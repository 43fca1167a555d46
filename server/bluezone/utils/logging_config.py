import logging
import sys
from typing import Optional

from bluezone.config import Settings, get_settings


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure the root logger once for the whole process.

    Modules log through `logging.getLogger(__name__)`; this only decides
    level, format and destination.
    """
    if settings is None:
        settings = get_settings()

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])
    logging.getLogger("bluezone").setLevel(level)
