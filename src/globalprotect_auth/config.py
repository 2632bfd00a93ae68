from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, model_validator

from .gp_params import DEFAULT_CLIENT_VERSION, DEFAULT_TOKEN_SENTINELS, DEFAULT_USER_AGENT, GpParams
from .util.host import default_client_os, normalize_server


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name, "") or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in {"1", "true", "t", "yes", "y", "on"}


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _parse_sentinels_env(value: str) -> Optional[list[str]]:
    """
    Parse GP_TOKEN_SENTINELS.

    Accepts a JSON list (`["", "(null)", "-1", "empty", "none"]`) or a comma-separated list where
    an empty item stands for the empty string (`,(null),-1,empty,none`). Unset means "use defaults".
    """
    s = (value or "").strip()
    if not s:
        return None

    if s.startswith("["):
        try:
            data = json.loads(s)
        except ValueError:
            data = None
        if isinstance(data, list):
            return [str(x) for x in data]

    return [item.strip() for item in s.split(",")]


def _default_config_from_env() -> dict:
    """
    Env-only config so a `.env` file is enough; a YAML file can still override any key.
    """
    gp: dict = {
        "portal": os.getenv("GP_PORTAL", ""),
        "gateway": os.getenv("GP_GATEWAY", ""),
        "user_agent": os.getenv("GP_USER_AGENT", DEFAULT_USER_AGENT),
        "client_os": os.getenv("GP_CLIENT_OS", "") or default_client_os(),
        "os_version": os.getenv("GP_OS_VERSION", ""),
        "client_version": os.getenv("GP_CLIENT_VERSION", DEFAULT_CLIENT_VERSION),
        "computer": os.getenv("GP_COMPUTER", ""),
        "ignore_tls_errors": _env_bool("GP_IGNORE_TLS_ERRORS", default=False),
        "certificate": os.getenv("GP_CERTIFICATE", ""),
        "sslkey": os.getenv("GP_SSLKEY", ""),
        "key_password": os.getenv("GP_KEY_PASSWORD", ""),
    }
    sentinels = _parse_sentinels_env(os.getenv("GP_TOKEN_SENTINELS", ""))
    if sentinels is not None:
        gp["token_sentinels"] = sentinels

    return {
        "gp": gp,
        "auth": {
            "username": os.getenv("GP_USERNAME", ""),
            "password": os.getenv("GP_PASSWORD", ""),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", ""),
        },
    }


class GpConfig(BaseModel):
    """
    Connection settings for one GlobalProtect portal.

    `portal` accepts a bare host or a URL; it is normalized to `https://host[:port]`.
    """

    portal: str = ""
    gateway: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    client_os: Literal["Linux", "Windows", "Mac"] = "Linux"
    os_version: str = ""
    client_version: str = DEFAULT_CLIENT_VERSION
    computer: str = ""
    ignore_tls_errors: bool = False
    timeout_seconds: float = 30.0

    certificate: str = ""
    sslkey: str = ""
    key_password: str = Field(default="", repr=False)

    token_sentinels: list[str] = Field(default_factory=lambda: sorted(DEFAULT_TOKEN_SENTINELS))
    extra_params: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _normalize(self) -> "GpConfig":
        if self.portal.strip():
            self.portal = normalize_server(self.portal)
        self.gateway = self.gateway.strip()
        return self


class AuthConfig(BaseModel):
    username: str = ""
    password: str = Field(default="", repr=False)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = ""


class AppConfig(BaseModel):
    gp: GpConfig = GpConfig()
    auth: AuthConfig = AuthConfig()
    logging: LoggingConfig = LoggingConfig()

    def require_portal(self) -> str:
        if not self.gp.portal:
            raise ValueError("gp.portal is required (set GP_PORTAL or gp.portal in the YAML config)")
        return self.gp.portal

    def to_gp_params(self, **overrides: object) -> GpParams:
        g = self.gp
        values: dict = {
            "user_agent": g.user_agent,
            "client_os": g.client_os,
            "os_version": g.os_version or None,
            "client_version": g.client_version,
            "ignore_tls_errors": g.ignore_tls_errors,
            "certificate": g.certificate or None,
            "sslkey": g.sslkey or None,
            "key_password": g.key_password or None,
            "timeout_seconds": g.timeout_seconds,
            "extra_params": tuple(g.extra_params.items()),
            "token_sentinels": frozenset(g.token_sentinels),
        }
        # Unset computer means "use this machine's hostname" (GpParams default).
        if g.computer:
            values["computer"] = g.computer
        values.update(overrides)
        return GpParams(**values)


def load_config(path: Union[str, Path, None] = None) -> AppConfig:
    raw: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    return AppConfig.model_validate(merged)
