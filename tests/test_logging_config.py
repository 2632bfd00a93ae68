from __future__ import annotations

import logging
from pathlib import Path

import pytest

from globalprotect_auth.logging_config import configure_logging
from globalprotect_auth.redaction import TRACE, SecretRedactionFilter


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_configure_logging_writes_redacted_file(tmp_path: Path, restore_root_logging: logging.Logger) -> None:
    log_file = tmp_path / "logs" / "gp.log"
    configure_logging(level="debug", file_path=str(log_file))

    root = restore_root_logging
    assert root.level == logging.DEBUG
    assert all(any(isinstance(f, SecretRedactionFilter) for f in h.filters) for h in root.handlers)

    logging.getLogger("globalprotect_auth.test").info("cert %s", "pkcs11:pin-value=31337;id=2")
    for h in root.handlers:
        h.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "pkcs11:pin-value=<redacted>;id=2" in text
    assert "31337" not in text


def test_configure_logging_trace_level_and_unknown_names(restore_root_logging: logging.Logger) -> None:
    configure_logging(level="TRACE")
    assert logging.getLevelName(TRACE) == "TRACE"
    assert restore_root_logging.level == TRACE

    configure_logging(level="not-a-level")
    assert restore_root_logging.level == logging.INFO
