from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

import httpx

from .errors import PortalError, PortalErrorKind, portal_error
from .util.xml import try_parse_xml


logger = logging.getLogger(__name__)

HIP_HEADER = "x-private-pan-globalprotect"
HIP_REQUIRED_VALUE = "HIP_REQUIRED"

MAX_REASON_BODY_CHARS = 256

_RESP_STATUS_RE = re.compile(r"""respStatus\s*=\s*(["'])(.*?)\1""")
_RESP_MSG_RE = re.compile(r"""respMsg\s*=\s*(["'])(.*?)\1""")
_AUTH_FAILED_RE = re.compile(
    r"auth(entication)?\s+fail|invalid\s+(user|username|password|credential|authentication\s+cookie)",
    re.I,
)
_AUTH_FAILED_STATUSES = frozenset({401, 403, 512})


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def _truncate(body: str, limit: int = MAX_REASON_BODY_CHARS) -> str:
    text = (body or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _script_error_message(body: str) -> Optional[tuple[str, str]]:
    """
    Look for the JavaScript-y status block the portal uses on login pages:

        var respStatus = "Error";
        var respMsg = "Authentication failed: Invalid username or password";

    Both assignments may share a line (minified scripts). Returns (status, message) when a
    respStatus assignment is present.
    """
    status = None
    message = ""
    for line in body.splitlines():
        if status is None:
            m = _RESP_STATUS_RE.search(line)
            if m:
                status = m.group(2)
        if not message:
            m = _RESP_MSG_RE.search(line)
            if m:
                message = m.group(2).strip()
    if status is None:
        return None
    return status, message


def _xml_error_message(body: str) -> Optional[str]:
    """
    Error text from XML bodies such as:

        <response status="error"><error>Invalid authentication cookie</error></response>
        <prelogin-response><status>Error</status><msg>GlobalProtect portal does not exist</msg></prelogin-response>
    """
    if "<" not in body:
        return None
    root = try_parse_xml(body)
    if root is None:
        return None

    failed = (root.get("status") or "").strip().lower() == "error"
    status_node = root.find("status")
    if status_node is not None and (status_node.text or "").strip().lower() == "error":
        failed = True
    if not failed:
        return None

    for tag in ("error", "msg", "message"):
        node = root.find(f".//{tag}")
        if node is not None and (node.text or "").strip():
            return node.text.strip()
    return "server reported an error without a message"


def _error_kind_for_message(message: str) -> PortalErrorKind:
    if _AUTH_FAILED_RE.search(message or ""):
        return PortalErrorKind.AUTH_FAILED
    return PortalErrorKind.OTHER


def classify_response(status: int, headers: Mapping[str, str], body: str) -> Optional[PortalError]:
    """
    Classify a raw GlobalProtect response.

    Returns None on success, otherwise the `PortalError` describing the failure (not raised).
    Pure: no network access and no state.
    """
    body = body or ""

    hip = _header(headers, HIP_HEADER)
    if hip is not None and hip.strip().upper() == HIP_REQUIRED_VALUE:
        reason = _truncate(body) or HIP_REQUIRED_VALUE
        if HIP_REQUIRED_VALUE not in reason:
            reason = f"{HIP_REQUIRED_VALUE}: {reason}"
        return portal_error(PortalErrorKind.HIP_REQUIRED, reason, status=status)

    script = _script_error_message(body)
    if script is not None:
        resp_status, message = script
        if resp_status.strip().lower() == "error":
            reason = message or _truncate(body)
            return portal_error(_error_kind_for_message(reason), reason, status=status)

    xml_message = _xml_error_message(body)
    if xml_message is not None:
        return portal_error(_error_kind_for_message(xml_message), xml_message, status=status)

    if 200 <= status < 300:
        return None

    reason = f"HTTP {status}: {_truncate(body)}" if body.strip() else f"HTTP {status}"
    if status in _AUTH_FAILED_STATUSES:
        return portal_error(PortalErrorKind.AUTH_FAILED, reason, status=status)
    return portal_error(PortalErrorKind.OTHER, reason, status=status)


def ensure_success(response: httpx.Response) -> str:
    """Return the response body, or raise the classified `PortalError`."""
    body = response.text
    error = classify_response(response.status_code, response.headers, body)
    if error is not None:
        logger.warning("GlobalProtect request failed: %s", error)
        raise error
    return body
