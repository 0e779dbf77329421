import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def set_logger(log_name="DISKSPEED", log_file=None, level=logging.WARNING):
    logger = logging.getLogger(log_name)
    if logger.handlers:
        if level is not None:
            logger.setLevel(level)
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if level is not None:
        logger.setLevel(level)
    return logger


def get_logger(name=None):
    """Return a child of the DISKSPEED logger, e.g. DISKSPEED.transfer."""
    return logging.getLogger("DISKSPEED" if not name else f"DISKSPEED.{name}")
