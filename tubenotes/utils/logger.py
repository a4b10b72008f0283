import logging
from rich.logging import RichHandler
from tubenotes.config import settings

def setup_logger(name: str = "tubenotes") -> logging.Logger:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)]
    )
    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger(name)

logger = setup_logger()
