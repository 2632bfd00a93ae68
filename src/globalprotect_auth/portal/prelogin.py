from __future__ import annotations

import base64
import binascii
import logging
from typing import Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict

from ..errors import ParseError, PortalError
from ..gp_params import GpParams
from ..http_client import client_scope, post_form
from ..response import ensure_success
from ..util.host import normalize_server
from ..util.xml import descendant_text, parse_xml


logger = logging.getLogger(__name__)

PORTAL_PRELOGIN_PATH = "/global-protect/prelogin.esp"
GATEWAY_PRELOGIN_PATH = "/ssl-vpn/prelogin.esp"

DEFAULT_REGION = "Unknown"


class StandardPrelogin(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["standard"] = "standard"
    region: str = DEFAULT_REGION
    auth_message: str = "Please enter the login credentials"
    label_username: str = "Username"
    label_password: str = "Password"


class SamlPrelogin(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["saml"] = "saml"
    region: str = DEFAULT_REGION
    saml_request: str
    saml_auth_method: str = "REDIRECT"
    support_default_browser: bool = False


PreloginResult = Union[StandardPrelogin, SamlPrelogin]


def _decode_saml_request(raw: str) -> str:
    # Portals send the SAML request (a URL for REDIRECT, an HTML form for POST) base64-encoded.
    try:
        return base64.b64decode(raw, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return raw


def parse_prelogin(body: str) -> PreloginResult:
    root = parse_xml(body)
    if root.tag != "prelogin-response":
        raise ParseError(f"unexpected prelogin root element <{root.tag}>")

    status = descendant_text(root, "status") or ""
    if status and status.lower() != "success":
        msg = descendant_text(root, "msg") or f"prelogin status {status}"
        raise PortalError(msg)

    region = descendant_text(root, "region") or DEFAULT_REGION
    saml_method = descendant_text(root, "saml-auth-method")
    saml_request = descendant_text(root, "saml-request")

    if saml_method and saml_request:
        default_browser = (descendant_text(root, "saml-default-browser") or "").lower() == "yes"
        return SamlPrelogin(
            region=region,
            saml_request=_decode_saml_request(saml_request),
            saml_auth_method=saml_method,
            support_default_browser=default_browser,
        )

    fields = {
        "auth_message": descendant_text(root, "authentication-message"),
        "label_username": descendant_text(root, "username-label"),
        "label_password": descendant_text(root, "password-label"),
    }
    return StandardPrelogin(region=region, **{k: v for k, v in fields.items() if v})


async def prelogin(
    portal: str,
    gp_params: GpParams,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> PreloginResult:
    """
    Ask the portal (or gateway, with `gp_params.is_gateway`) which authentication method it wants.

    Safe to retry: the round has no server-side effect.
    """
    base_url = normalize_server(portal)
    path = GATEWAY_PRELOGIN_PATH if gp_params.is_gateway else PORTAL_PRELOGIN_PATH
    url = f"{base_url}{path}"

    form = gp_params.build_form(
        fixed={
            "default-browser": "1" if gp_params.prefer_default_browser else "0",
            "cas-support": "yes",
        }
    )

    logger.info("Prelogin: %s (user_agent=%r)", url, gp_params.user_agent)
    try:
        async with client_scope(client, gp_params) as http:
            res = await post_form(http, url, form)
            body = ensure_success(res)
        result = parse_prelogin(body)
    except PortalError as e:
        logger.warning("Prelogin failed for %s: %s", base_url, e)
        raise e.with_context("Prelogin error") from e

    logger.info("Prelogin result: method=%s region=%s", result.kind, result.region)
    return result
