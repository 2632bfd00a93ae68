from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Optional, Sequence
from urllib.parse import quote, unquote

from ..errors import ParseError
from ..gp_params import DEFAULT_TOKEN_SENTINELS


@dataclass(frozen=True)
class TokenSlot:
    """One positional `<argument>` of the gateway login response."""

    index: int
    name: str
    required: bool


# Position -> token field. The gateway returns these as an unnamed, ordered argument list; if the
# layout changes, this table is the only place to touch.
GATEWAY_TOKEN_SLOTS: tuple[TokenSlot, ...] = (
    TokenSlot(1, "authcookie", True),
    TokenSlot(3, "portal", True),
    TokenSlot(4, "user", True),
    TokenSlot(7, "domain", True),
    TokenSlot(15, "preferred-ip", True),
    TokenSlot(2, "persistent-cookie", False),
    TokenSlot(16, "portal-userauthcookie", False),
    TokenSlot(17, "portal-prelogonuserauthcookie", False),
)

COMPUTER_FIELD = "computer"


@dataclass(frozen=True)
class GatewayToken:
    fields: tuple[tuple[str, str], ...]

    def get(self, name: str) -> Optional[str]:
        for key, value in self.fields:
            if key == name:
                return value
        return None

    def keys(self) -> list[str]:
        return [k for k, _ in self.fields]

    def encode(self) -> str:
        return encode_token(self.fields)


def normalize_token_value(value: str) -> str:
    """
    Undo one layer of percent-encoding if the server already applied it.

    Gateways pre-encode some arguments (e.g. domain "%28empty_domain%29") but not others; encoding
    those again would produce "%2528...". Values that do not decode to valid UTF-8 are kept raw.
    """
    if "%" not in value:
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def encode_token(fields: Sequence[tuple[str, str]]) -> str:
    return "&".join(f"{key}={quote(normalize_token_value(value), safe='')}" for key, value in fields)


def build_gateway_token(
    arguments: Sequence[str],
    computer: str,
    *,
    sentinels: AbstractSet[str] = DEFAULT_TOKEN_SENTINELS,
    slots: Sequence[TokenSlot] = GATEWAY_TOKEN_SLOTS,
) -> GatewayToken:
    """
    Map the positional argument list onto named token fields.

    Fields come out in wire order: required slots, then `computer`, then whichever optional slots
    hold a real value. Any missing required slot fails the whole build.
    """
    required: list[tuple[str, str]] = []
    optional: list[tuple[str, str]] = []

    for slot in slots:
        value = arguments[slot.index] if slot.index < len(arguments) else None
        if slot.required:
            if value is None:
                raise ParseError(f"Failed to read {slot.name} from gateway login arguments (slot {slot.index})")
            required.append((slot.name, value))
        elif value is not None and value not in sentinels:
            optional.append((slot.name, value))

    return GatewayToken(fields=tuple(required) + ((COMPUTER_FIELD, computer),) + tuple(optional))
