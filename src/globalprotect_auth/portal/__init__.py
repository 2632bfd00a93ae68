from .config import Gateway, PortalAuthCookie, PortalConfig, retrieve_config
from .prelogin import PreloginResult, SamlPrelogin, StandardPrelogin, prelogin

__all__ = [
    "prelogin",
    "PreloginResult",
    "StandardPrelogin",
    "SamlPrelogin",
    "retrieve_config",
    "PortalConfig",
    "PortalAuthCookie",
    "Gateway",
]
