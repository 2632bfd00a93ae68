from __future__ import annotations

from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .credential import Credential
from .util.host import default_client_os, default_computer_name


DEFAULT_USER_AGENT = "PAN GlobalProtect"
DEFAULT_CLIENT_VERSION = "4100"

# Placeholder values the gateway puts in unused argument slots. Observed behavior, not documented
# by the vendor, so it is configurable per attempt.
DEFAULT_TOKEN_SENTINELS: frozenset[str] = frozenset({"", "(null)", "-1", "empty"})

ClientOs = Literal["Linux", "Windows", "Mac"]

_CLIENT_OS_DEFAULT_VERSIONS = {
    "Linux": "Linux",
    "Windows": "Microsoft Windows 10 Pro , 64-bit",
    "Mac": "Apple Mac OS X 13.4.0",
}


class GpParams(BaseModel):
    """
    Per-attempt request context shared read-only by every stage of one login attempt.

    Fields produced by `to_params()` take precedence over credential fields on key collision.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_agent: str = DEFAULT_USER_AGENT
    client_os: ClientOs = Field(default_factory=default_client_os)
    os_version: Optional[str] = None
    client_version: str = DEFAULT_CLIENT_VERSION
    computer: str = Field(default_factory=default_computer_name)

    # TLS
    ignore_tls_errors: bool = False
    certificate: Optional[str] = None
    sslkey: Optional[str] = None
    key_password: Optional[str] = Field(default=None, repr=False)
    timeout_seconds: float = 30.0

    is_gateway: bool = False
    prefer_default_browser: bool = True

    # Ordered (name, value) pairs; a mapping is accepted and frozen into pairs.
    extra_params: tuple[tuple[str, str], ...] = ()
    token_sentinels: frozenset[str] = DEFAULT_TOKEN_SENTINELS

    @field_validator("extra_params", mode="before")
    @classmethod
    def _freeze_extra_params(cls, value: object) -> object:
        if isinstance(value, Mapping):
            return tuple((str(k), str(v)) for k, v in value.items())
        return value

    def effective_os_version(self) -> str:
        return self.os_version or _CLIENT_OS_DEFAULT_VERSIONS[self.client_os]

    def to_params(self) -> dict[str, str]:
        params = {
            "prot": "https:",
            "jnlpReady": "jnlpReady",
            "ok": "Login",
            "direct": "yes",
            "ipv6-support": "yes",
            "clientVer": self.client_version,
            "clientos": self.client_os,
            "os-version": self.effective_os_version(),
            "computer": self.computer,
        }
        params.update(self.extra_params)
        return params

    def build_form(
        self,
        credential: Optional[Credential] = None,
        fixed: Optional[Mapping[str, str]] = None,
    ) -> dict[str, str]:
        """
        Request body for one round: credential fields, overlaid by these params, overlaid by
        `fixed` (per-endpoint fields such as `server`).
        """
        form: dict[str, str] = {}
        if credential is not None:
            form.update(credential.to_params())
        form.update(self.to_params())
        if fixed:
            form.update(fixed)
        return form
