import logging
import sys

from app.utils.logging_redaction import install_redaction_filter

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that flood the output at INFO.
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "aiosqlite")


def setup_logging(level: str = "INFO") -> None:
    """
    Configure centralized application logging.

    Installs the stdout handler, lowers chatty library loggers to WARNING and
    attaches the redaction filter so bearer tokens and API keys never reach
    the log stream.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    install_redaction_filter()
