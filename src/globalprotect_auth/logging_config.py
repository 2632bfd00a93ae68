import logging
import os
from pathlib import Path
from typing import Optional

from .redaction import TRACE, SecretRedactionFilter


def configure_logging(level: str = "INFO", file_path: Optional[str] = None) -> None:
    logging.addLevelName(TRACE, "TRACE")
    numeric_level = logging.getLevelName((level or "INFO").upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    # Every sink gets the redaction filter, including native-engine lines routed through logging.
    redaction = SecretRedactionFilter()
    for handler in handlers:
        handler.addFilter(redaction)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        handlers=handlers,
        force=True,  # allow configure_logging() to be called multiple times (CLI does this)
    )

    # Reduce noise from chatty libraries
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(os.getenv("NOISY_LOG_LEVEL", "WARNING"))
