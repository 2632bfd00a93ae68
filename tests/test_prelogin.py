from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from globalprotect_auth.errors import NetworkError, ParseError, PortalError
from globalprotect_auth.gp_params import GpParams
from globalprotect_auth.portal.prelogin import (
    SamlPrelogin,
    StandardPrelogin,
    parse_prelogin,
    prelogin,
)


def _run_prelogin(handler, portal: str = "vpn.example.com", **params: object):
    gp_params = GpParams(client_os="Linux", computer="host-1", **params)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await prelogin(portal, gp_params, client=client)

    return asyncio.run(run())


def test_parse_saml_prelogin(load_data) -> None:
    result = parse_prelogin(load_data("prelogin_saml.xml"))
    assert isinstance(result, SamlPrelogin)
    assert result.region == "CN"
    assert result.saml_auth_method == "REDIRECT"
    assert result.saml_request == "SAMLRequest=xxx"
    assert result.support_default_browser is True


def test_parse_standard_prelogin(load_data) -> None:
    result = parse_prelogin(load_data("prelogin_standard.xml"))
    assert isinstance(result, StandardPrelogin)
    assert result.region == "US"
    assert result.auth_message == "Enter corporate credentials"
    assert result.label_username == "Corp ID"
    assert result.label_password == "Passcode"


def test_parse_standard_prelogin_defaults() -> None:
    result = parse_prelogin("<prelogin-response><status>Success</status></prelogin-response>")
    assert result == StandardPrelogin()
    assert result.region == "Unknown"


def test_parse_saml_request_that_is_not_base64_is_kept() -> None:
    body = (
        "<prelogin-response><status>Success</status>"
        "<saml-auth-method>POST</saml-auth-method>"
        "<saml-request>&lt;html&gt;form&lt;/html&gt;</saml-request>"
        "</prelogin-response>"
    )
    result = parse_prelogin(body)
    assert isinstance(result, SamlPrelogin)
    assert result.saml_request == "<html>form</html>"
    assert result.support_default_browser is False


def test_parse_prelogin_error_status(load_data) -> None:
    with pytest.raises(PortalError) as excinfo:
        parse_prelogin(load_data("prelogin_error.xml"))
    assert excinfo.value.reason == "GlobalProtect portal does not exist"


def test_parse_prelogin_wrong_root() -> None:
    with pytest.raises(ParseError):
        parse_prelogin("<policy/>")


def test_prelogin_posts_to_portal_path(load_data) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        return httpx.Response(200, text=load_data("prelogin_saml.xml"))

    result = _run_prelogin(handler, portal="https://vpn.example.com/global-protect/login.esp")
    assert isinstance(result, SamlPrelogin)
    assert seen["url"] == "https://vpn.example.com/global-protect/prelogin.esp"
    assert seen["form"]["default-browser"] == "1"
    assert seen["form"]["cas-support"] == "yes"
    assert seen["form"]["clientos"] == "Linux"
    assert "user" not in seen["form"]


def test_prelogin_gateway_path_and_embedded_browser(load_data) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        return httpx.Response(200, text=load_data("prelogin_standard.xml"))

    _run_prelogin(handler, is_gateway=True, prefer_default_browser=False)
    assert seen["url"] == "https://vpn.example.com/ssl-vpn/prelogin.esp"
    assert seen["form"]["default-browser"] == "0"


def test_prelogin_error_gets_context(load_data) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=load_data("prelogin_error.xml"))

    with pytest.raises(PortalError) as excinfo:
        _run_prelogin(handler)
    assert excinfo.value.reason == "Prelogin error: GlobalProtect portal does not exist"


def test_prelogin_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(NetworkError):
        _run_prelogin(handler)
