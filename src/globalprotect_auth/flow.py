from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar, Union

import httpx

from .credential import AuthCookieCredential, Credential, MfaCredential, PasswordCredential, PreloginCredential
from .errors import AuthFailedError, HipRequiredError, PortalError
from .gateway.login import GatewayCookie, GatewayMfa, gateway_login
from .gp_params import GpParams
from .http_client import build_http_client
from .portal.config import PortalConfig, retrieve_config
from .portal.prelogin import PreloginResult, SamlPrelogin, StandardPrelogin, prelogin
from .util.host import normalize_server, remove_url_scheme


logger = logging.getLogger(__name__)

T = TypeVar("T")
MaybeAwaitable = Union[T, Awaitable[T]]

PasswordProvider = Callable[[StandardPrelogin], MaybeAwaitable[str]]
SamlHandler = Callable[[SamlPrelogin], MaybeAwaitable[PreloginCredential]]
MfaCodeProvider = Callable[[str], MaybeAwaitable[str]]
# Receives the HIP error and the rejected credential; submits the report out of band and returns the
# credential to retry with.
HipHandler = Callable[[HipRequiredError, Credential], MaybeAwaitable[Credential]]

DEFAULT_MAX_MFA_ROUNDS = 3


@dataclass(frozen=True)
class TunnelTarget:
    """What the tunnel engine needs: scheme-less gateway host and the `&`-joined cookie."""

    server: str
    cookie: str


async def _resolve(value: MaybeAwaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


class LoginFlow:
    """
    Drives one login attempt: prelogin -> portal config -> gateway login.

    Steps that need the outside world (SAML browser, password prompt, HIP report submission, MFA
    code entry) are caller-supplied callbacks. Nothing is retried on its own: the only repeats are
    one portal-config round after `hip_handler` and one gateway round per MFA code.
    """

    def __init__(
        self,
        gp_params: GpParams,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_mfa_rounds: int = DEFAULT_MAX_MFA_ROUNDS,
    ) -> None:
        self.gp_params = gp_params
        self._transport = transport
        self._max_mfa_rounds = max_mfa_rounds

    async def authenticate(
        self,
        portal: str,
        *,
        username: str = "",
        credential: Optional[Credential] = None,
        password_provider: Optional[PasswordProvider] = None,
        saml_handler: Optional[SamlHandler] = None,
        mfa_code_provider: Optional[MfaCodeProvider] = None,
        hip_handler: Optional[HipHandler] = None,
        gateway: Optional[str] = None,
    ) -> TunnelTarget:
        async with build_http_client(self.gp_params, credential, transport=self._transport) as http:
            prelogin_result = await prelogin(portal, self.gp_params, client=http)
            if credential is None:
                credential = await self._initial_credential(
                    prelogin_result,
                    username=username,
                    password_provider=password_provider,
                    saml_handler=saml_handler,
                )

            config = await self._retrieve_config(portal, credential, hip_handler=hip_handler, client=http)
            gateway_address = self._select_gateway(config, wanted=gateway, portal=portal)
            logger.info("Using gateway %s", gateway_address)

            return await self._gateway_login(
                gateway_address,
                AuthCookieCredential.from_portal_config(config),
                mfa_code_provider=mfa_code_provider,
                client=http,
            )

    async def _initial_credential(
        self,
        result: PreloginResult,
        *,
        username: str,
        password_provider: Optional[PasswordProvider],
        saml_handler: Optional[SamlHandler],
    ) -> Credential:
        if isinstance(result, SamlPrelogin):
            if saml_handler is None:
                raise PortalError("Portal requires SAML authentication but no SAML handler was provided")
            logger.info("Portal uses SAML (method=%s default_browser=%s)", result.saml_auth_method, result.support_default_browser)
            return await _resolve(saml_handler(result))
        elif isinstance(result, StandardPrelogin):
            if password_provider is None:
                raise PortalError("Portal requires a password but no password provider was provided")
            if not username:
                raise PortalError("Portal requires a username for standard authentication")
            password = await _resolve(password_provider(result))
            return PasswordCredential(username=username, password=password)
        else:
            raise TypeError(f"Unhandled prelogin result: {type(result).__name__}")

    async def _retrieve_config(
        self,
        portal: str,
        credential: Credential,
        *,
        hip_handler: Optional[HipHandler],
        client: httpx.AsyncClient,
    ) -> PortalConfig:
        try:
            return await retrieve_config(portal, credential, self.gp_params, client=client)
        except HipRequiredError as e:
            if hip_handler is None:
                raise
            logger.info("Portal requires a HIP report; handing off to the HIP handler.")
            refreshed = await _resolve(hip_handler(e, credential))

        # Exactly one retry after remediation; a second HIP_REQUIRED propagates.
        return await retrieve_config(portal, refreshed, self.gp_params, client=client)

    def _select_gateway(self, config: PortalConfig, *, wanted: Optional[str], portal: str) -> str:
        if wanted:
            gw = config.find_gateway(wanted)
            if gw is None:
                logger.warning("Gateway %r not in portal config; connecting to it directly.", wanted)
                return wanted
            return gw.address

        gateways = config.sorted_gateways()
        if not gateways:
            logger.info("Portal config lists no gateways; using the portal as gateway.")
            return remove_url_scheme(normalize_server(portal))
        return gateways[0].address

    async def _gateway_login(
        self,
        gateway: str,
        credential: Credential,
        *,
        mfa_code_provider: Optional[MfaCodeProvider],
        client: httpx.AsyncClient,
    ) -> TunnelTarget:
        server = remove_url_scheme(normalize_server(gateway))
        rounds = 0
        while True:
            result = await gateway_login(gateway, credential, self.gp_params, client=client)
            if isinstance(result, GatewayCookie):
                return TunnelTarget(server=server, cookie=result.token)
            elif isinstance(result, GatewayMfa):
                if mfa_code_provider is None:
                    raise AuthFailedError(f"Gateway requires MFA but no code provider was given: {result.message}")
                if rounds >= self._max_mfa_rounds:
                    raise AuthFailedError(f"Gave up after {rounds} MFA challenges: {result.message}")
                rounds += 1
                code = await _resolve(mfa_code_provider(result.message))
                credential = MfaCredential(username=credential.username, input_str=result.input_str, passcode=code)
            else:
                raise TypeError(f"Unhandled gateway login result: {type(result).__name__}")
