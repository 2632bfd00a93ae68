from .credential import (
    AuthCookieCredential,
    CertificateCredential,
    Credential,
    MfaCredential,
    PasswordCredential,
    PreloginCredential,
)
from .errors import (
    AuthFailedError,
    HipRequiredError,
    NetworkError,
    ParseError,
    PortalError,
    PortalErrorKind,
)
from .flow import LoginFlow, TunnelTarget
from .gateway import GatewayCookie, GatewayLoginResult, GatewayMfa, gateway_login
from .gp_params import GpParams
from .portal import PortalConfig, PreloginResult, SamlPrelogin, StandardPrelogin, prelogin, retrieve_config
from .redaction import log_engine_message, redact_secrets
from .response import classify_response

__all__ = [
    "Credential",
    "PasswordCredential",
    "PreloginCredential",
    "AuthCookieCredential",
    "MfaCredential",
    "CertificateCredential",
    "GpParams",
    "PortalError",
    "PortalErrorKind",
    "NetworkError",
    "ParseError",
    "HipRequiredError",
    "AuthFailedError",
    "classify_response",
    "prelogin",
    "PreloginResult",
    "StandardPrelogin",
    "SamlPrelogin",
    "retrieve_config",
    "PortalConfig",
    "gateway_login",
    "GatewayLoginResult",
    "GatewayCookie",
    "GatewayMfa",
    "LoginFlow",
    "TunnelTarget",
    "redact_secrets",
    "log_engine_message",
]
