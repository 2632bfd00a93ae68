from __future__ import annotations

import logging


logger = logging.getLogger("globalprotect_auth.engine")

SECRET_MARKER = "pin-value="
REDACTED = "<redacted>"
# A value ends at the first of these; line breaks included so a match never spans lines.
VALUE_DELIMITERS = frozenset("&; '\")\r\n")

TRACE = logging.DEBUG - 5

# Native engine levels: 0 = error, 1 = info, 2 = debug, 3 = trace. Engine errors are mostly
# recoverable chatter, so they are logged as warnings.
_ENGINE_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
    3: TRACE,
}


def redact_secrets(line: str) -> str:
    """
    Replace the value after every `pin-value=` marker with `<redacted>`.

    Everything outside the value spans is returned unchanged; a line without the marker is
    returned as-is.
    """
    start = line.find(SECRET_MARKER)
    if start < 0:
        return line

    out: list[str] = []
    pos = 0
    while start >= 0:
        value_start = start + len(SECRET_MARKER)
        value_end = value_start
        while value_end < len(line) and line[value_end] not in VALUE_DELIMITERS:
            value_end += 1
        out.append(line[pos:value_start])
        out.append(REDACTED)
        pos = value_end
        start = line.find(SECRET_MARKER, pos)
    out.append(line[pos:])
    return "".join(out)


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secrets from each record's message before handlers format it.

    Redaction runs per line of the message, so a marker on one line never consumes the next.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if SECRET_MARKER not in message:
            return True
        record.msg = "".join(redact_secrets(line) for line in message.splitlines(keepends=True))
        record.args = None
        return True


def log_engine_message(level: int, message: str) -> None:
    """
    Forward one log line from the native tunnel engine into Python logging.

    Safe to call from the engine's own logging thread: no state beyond the arguments.
    """
    text = redact_secrets(message.rstrip("\n"))
    py_level = _ENGINE_LEVELS.get(level)
    if py_level is None:
        logger.warning("Unknown log level: %s, enable DEBUG log level to see more details", level)
        logger.debug("%s", text)
        return
    logger.log(py_level, "%s", text)
