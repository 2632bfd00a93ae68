from .login import GatewayCookie, GatewayLoginResult, GatewayMfa, gateway_login
from .token import GATEWAY_TOKEN_SLOTS, GatewayToken, TokenSlot, build_gateway_token, encode_token

__all__ = [
    "gateway_login",
    "GatewayLoginResult",
    "GatewayCookie",
    "GatewayMfa",
    "GatewayToken",
    "TokenSlot",
    "GATEWAY_TOKEN_SLOTS",
    "build_gateway_token",
    "encode_token",
]
