from __future__ import annotations

import logging
import sys
from typing import Optional

import httpx
from lxml import etree
from pydantic import BaseModel, ConfigDict, Field

from ..credential import Credential
from ..errors import ParseError, PortalError
from ..gp_params import GpParams
from ..http_client import client_scope, post_form
from ..response import ensure_success
from ..util.host import normalize_server, remove_url_scheme
from ..util.xml import descendant_text, parse_xml


logger = logging.getLogger(__name__)

GETCONFIG_PATH = "/global-protect/getconfig.esp"

_NO_PRIORITY = sys.maxsize


class Gateway(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    address: str
    priority: int = _NO_PRIORITY


class PortalAuthCookie(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    user_auth_cookie: str = Field(default="", repr=False)
    prelogon_user_auth_cookie: str = Field(default="", repr=False)


class PortalConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    portal: str
    auth_cookie: PortalAuthCookie
    gateways: list[Gateway] = Field(default_factory=list)
    config_digest: Optional[str] = None
    hip_collection: bool = False

    def sorted_gateways(self) -> list[Gateway]:
        """Gateways by ascending priority value; ties keep the portal's order."""
        return sorted(self.gateways, key=lambda g: g.priority)

    def find_gateway(self, wanted: str) -> Optional[Gateway]:
        w = (wanted or "").strip().lower()
        for gw in self.gateways:
            if w in (gw.name.lower(), gw.address.lower()):
                return gw
        return None


def _parse_priority(entry: etree._Element) -> int:
    values: list[int] = []
    for node in entry.iter("priority"):
        try:
            values.append(int((node.text or "").strip()))
        except ValueError:
            continue
    return min(values) if values else _NO_PRIORITY


def _parse_gateways(root: etree._Element) -> list[Gateway]:
    gateways: list[Gateway] = []
    for entry in root.findall("./gateways/external/list/entry"):
        address = (entry.get("name") or "").strip()
        if not address:
            continue
        description = (entry.findtext("description") or "").strip()
        gateways.append(Gateway(name=description or address, address=address, priority=_parse_priority(entry)))
    return gateways


def parse_portal_config(body: str, *, portal: str, username: str) -> PortalConfig:
    root = parse_xml(body)
    if root.tag != "policy":
        raise ParseError(f"unexpected portal config root element <{root.tag}>")

    auth_cookie = PortalAuthCookie(
        username=username,
        user_auth_cookie=descendant_text(root, "portal-userauthcookie") or "",
        prelogon_user_auth_cookie=descendant_text(root, "portal-prelogonuserauthcookie") or "",
    )
    return PortalConfig(
        portal=portal,
        auth_cookie=auth_cookie,
        gateways=_parse_gateways(root),
        config_digest=descendant_text(root, "config-digest"),
        hip_collection=root.find("hip-collection") is not None,
    )


async def retrieve_config(
    portal: str,
    credential: Credential,
    gp_params: GpParams,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> PortalConfig:
    """
    Exchange `credential` for the portal auth cookies and gateway list.

    A HIP enforcement response raises `HipRequiredError` and is never retried here.
    """
    base_url = normalize_server(portal)
    host = remove_url_scheme(base_url)
    url = f"{base_url}{GETCONFIG_PATH}"

    form = gp_params.build_form(credential, fixed={"server": host, "host": host})

    logger.info("Retrieving portal config: %s (user=%r)", url, credential.username)
    try:
        async with client_scope(client, gp_params, credential) as http:
            res = await post_form(http, url, form)
            body = ensure_success(res)
        config = parse_portal_config(body, portal=host, username=credential.username)
    except PortalError as e:
        raise e.with_context("Portal config error") from e

    logger.info(
        "Portal config OK (gateways=%d hip_collection=%s)",
        len(config.gateways),
        config.hip_collection,
    )
    return config
