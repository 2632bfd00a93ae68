from __future__ import annotations

import logging
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Optional, Union

import httpx

from .credential import CertificateCredential, Credential, is_pkcs11_uri
from .errors import NetworkError
from .gp_params import GpParams


logger = logging.getLogger(__name__)


def _client_cert(gp_params: GpParams, credential: Optional[Credential]) -> tuple[Optional[str], Optional[str], Optional[str]]:
    if isinstance(credential, CertificateCredential):
        return credential.certificate, credential.key, credential.key_password
    return gp_params.certificate, gp_params.sslkey, gp_params.key_password


def build_ssl_context(gp_params: GpParams, credential: Optional[Credential] = None) -> Union[ssl.SSLContext, bool]:
    """
    TLS policy for one attempt: server verification (unless `ignore_tls_errors`) plus an optional
    client certificate.

    PKCS#11 URIs cannot be loaded by the `ssl` module; they are passed through to the tunnel
    engine untouched and the HTTP rounds run without a client certificate.
    """
    cert, key, key_password = _client_cert(gp_params, credential)
    if cert and is_pkcs11_uri(cert):
        logger.info("Client certificate is a PKCS#11 URI; leaving it to the tunnel engine.")
        cert = None

    if not cert:
        return not gp_params.ignore_tls_errors

    ctx = ssl.create_default_context()
    if gp_params.ignore_tls_errors:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    ctx.load_cert_chain(certfile=cert, keyfile=key or None, password=key_password or None)
    return ctx


def build_http_client(
    gp_params: GpParams,
    credential: Optional[Credential] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    if gp_params.ignore_tls_errors:
        logger.warning("TLS certificate verification is disabled for this login attempt.")
    return httpx.AsyncClient(
        headers={"User-Agent": gp_params.user_agent},
        verify=build_ssl_context(gp_params, credential),
        timeout=httpx.Timeout(gp_params.timeout_seconds),
        follow_redirects=False,
        transport=transport,
    )


@asynccontextmanager
async def client_scope(
    client: Optional[httpx.AsyncClient],
    gp_params: GpParams,
    credential: Optional[Credential] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Use the caller's client as-is, or open (and close) a fresh one for this round."""
    if client is not None:
        yield client
        return
    async with build_http_client(gp_params, credential) as owned:
        yield owned


async def post_form(client: httpx.AsyncClient, url: str, form: Mapping[str, str]) -> httpx.Response:
    """POST a form-encoded body; transport/TLS failures become `NetworkError`."""
    try:
        return await client.post(url, data=dict(form))
    except httpx.HTTPError as e:
        logger.warning("Network error talking to %s: %s", url, e)
        raise NetworkError(f"{type(e).__name__}: {e}") from e
