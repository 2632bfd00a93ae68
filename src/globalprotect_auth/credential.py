from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .portal.config import PortalConfig


PKCS11_URI_PREFIX = "pkcs11:"


def is_pkcs11_uri(value: str) -> bool:
    return (value or "").strip().lower().startswith(PKCS11_URI_PREFIX)


class _CredentialBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    username: str

    def to_params(self) -> dict[str, str]:
        raise NotImplementedError


class PasswordCredential(_CredentialBase):
    kind: Literal["password"] = "password"
    password: str = Field(repr=False)

    def to_params(self) -> dict[str, str]:
        return {"user": self.username, "passwd": self.password}


class PreloginCredential(_CredentialBase):
    """
    Result of a SAML (or CAS) browser login.

    `prelogin_cookie` comes from the `prelogin-cookie` response header/field; some portals return a
    `portal-userauthcookie` token instead, so both are optional.
    """

    kind: Literal["prelogin"] = "prelogin"
    prelogin_cookie: Optional[str] = Field(default=None, repr=False)
    token: Optional[str] = Field(default=None, repr=False)

    def to_params(self) -> dict[str, str]:
        params = {"user": self.username}
        if self.prelogin_cookie:
            params["prelogin-cookie"] = self.prelogin_cookie
        if self.token:
            params["portal-userauthcookie"] = self.token
        return params


class AuthCookieCredential(_CredentialBase):
    kind: Literal["auth_cookie"] = "auth_cookie"
    user_auth_cookie: str = Field(repr=False)
    prelogon_user_auth_cookie: str = Field(repr=False)

    @classmethod
    def from_portal_config(cls, config: "PortalConfig") -> "AuthCookieCredential":
        cookie = config.auth_cookie
        return cls(
            username=cookie.username,
            user_auth_cookie=cookie.user_auth_cookie,
            prelogon_user_auth_cookie=cookie.prelogon_user_auth_cookie,
        )

    def to_params(self) -> dict[str, str]:
        return {
            "user": self.username,
            "portal-userauthcookie": self.user_auth_cookie,
            "portal-prelogonuserauthcookie": self.prelogon_user_auth_cookie,
        }


class MfaCredential(_CredentialBase):
    """
    Answer to a gateway MFA challenge: `input_str` echoes the challenge token, `passcode` is what
    the user typed.
    """

    kind: Literal["mfa"] = "mfa"
    input_str: str
    passcode: str = Field(repr=False)

    def to_params(self) -> dict[str, str]:
        return {"user": self.username, "passwd": self.passcode, "inputStr": self.input_str}


class CertificateCredential(_CredentialBase):
    # Either a PEM file path or a PKCS#11 URI.
    kind: Literal["certificate"] = "certificate"
    username: str = ""
    certificate: str
    key: Optional[str] = None
    key_password: Optional[str] = Field(default=None, repr=False)

    @property
    def is_pkcs11(self) -> bool:
        return is_pkcs11_uri(self.certificate)

    def to_params(self) -> dict[str, str]:
        return {"user": self.username, "passwd": ""}


Credential = Annotated[
    Union[
        PasswordCredential,
        PreloginCredential,
        AuthCookieCredential,
        MfaCredential,
        CertificateCredential,
    ],
    Field(discriminator="kind"),
]
