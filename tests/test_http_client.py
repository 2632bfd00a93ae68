from __future__ import annotations

import asyncio

import httpx

from globalprotect_auth.credential import CertificateCredential
from globalprotect_auth.gp_params import GpParams
from globalprotect_auth.http_client import build_http_client, build_ssl_context, client_scope


def test_ssl_context_defaults_to_verification() -> None:
    assert build_ssl_context(GpParams()) is True
    assert build_ssl_context(GpParams(ignore_tls_errors=True)) is False


def test_pkcs11_certificate_is_left_to_the_engine() -> None:
    cred = CertificateCredential(certificate="pkcs11:token=gp;object=cert")
    assert build_ssl_context(GpParams(), cred) is True
    assert build_ssl_context(GpParams(certificate="pkcs11:object=x", ignore_tls_errors=True)) is False


def test_client_sends_user_agent_and_does_not_follow_redirects() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers["user-agent"]
        return httpx.Response(302, headers={"location": "https://idp.example.com/"})

    async def run() -> int:
        params = GpParams(user_agent="PAN GlobalProtect/6.1")
        async with build_http_client(params, transport=httpx.MockTransport(handler)) as client:
            res = await client.post("https://vpn.example.com/global-protect/prelogin.esp", data={})
            return res.status_code

    assert asyncio.run(run()) == 302
    assert seen["ua"] == "PAN GlobalProtect/6.1"


def test_client_scope_reuses_caller_client() -> None:
    async def run() -> bool:
        async with httpx.AsyncClient() as mine:
            async with client_scope(mine, GpParams()) as http:
                same = http is mine
            return same and not mine.is_closed

    assert asyncio.run(run()) is True

