from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from ..credential import Credential
from ..errors import ParseError, PortalError
from ..gp_params import GpParams
from ..http_client import client_scope, post_form
from ..response import ensure_success
from ..util.host import normalize_server, remove_url_scheme
from ..util.xml import descendant_texts, parse_xml
from .token import build_gateway_token


logger = logging.getLogger(__name__)

GATEWAY_LOGIN_PATH = "/ssl-vpn/login.esp"
CHALLENGE_MARKER = "Challenge"


@dataclass(frozen=True)
class GatewayCookie:
    token: str


@dataclass(frozen=True)
class GatewayMfa:
    """
    The gateway wants a second factor. Not a failure: retry with an `MfaCredential` carrying
    `input_str` and the code the user entered.
    """

    message: str
    input_str: str


GatewayLoginResult = Union[GatewayCookie, GatewayMfa]


def _marker_value(body: str, marker: str) -> Optional[str]:
    # Only the first line mentioning the marker counts; the value is the text after its first quote.
    for line in body.splitlines():
        if marker in line:
            parts = line.split('"')
            return parts[1] if len(parts) > 1 else None
    return None


def parse_mfa(body: str) -> GatewayMfa:
    """
    Extract the challenge from the script-style body:

        var respStatus = "Challenge";
        var respMsg = "MFA message";
        thisForm.inputStr.value = "5ef64e83000119ed";
    """
    message = _marker_value(body, "respMsg")
    input_str = _marker_value(body, "inputStr")
    if message is None or input_str is None:
        raise ParseError(f"Failed to parse MFA challenge: {body.strip()[:256]}")
    return GatewayMfa(message=message, input_str=input_str)


def parse_gateway_login(body: str, gp_params: GpParams) -> GatewayLoginResult:
    if CHALLENGE_MARKER in body:
        return parse_mfa(body)

    root = parse_xml(body)
    arguments = descendant_texts(root, "argument")
    token = build_gateway_token(arguments, gp_params.computer, sentinels=gp_params.token_sentinels)
    return GatewayCookie(token=token.encode())


async def gateway_login(
    gateway: str,
    credential: Credential,
    gp_params: GpParams,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> GatewayLoginResult:
    base_url = normalize_server(gateway)
    host = remove_url_scheme(base_url)
    url = f"{base_url}{GATEWAY_LOGIN_PATH}"

    form = gp_params.build_form(credential, fixed={"server": host})

    logger.info("Perform gateway login: %s (user_agent=%r)", url, gp_params.user_agent)
    try:
        async with client_scope(client, gp_params, credential) as http:
            res = await post_form(http, url, form)
            body = ensure_success(res)
        result = parse_gateway_login(body, gp_params)
    except PortalError as e:
        raise e.with_context("Gateway login error") from e

    if isinstance(result, GatewayMfa):
        logger.info("Gateway requested MFA: %s", result.message)
    else:
        logger.info("Gateway login OK (gateway=%s)", host)
    return result
