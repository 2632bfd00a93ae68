from __future__ import annotations

from pathlib import Path

import pytest

from globalprotect_auth.config import _parse_sentinels_env, load_config
from globalprotect_auth.gp_params import DEFAULT_TOKEN_SENTINELS


_ENV_NAMES = (
    "GP_PORTAL",
    "GP_GATEWAY",
    "GP_USERNAME",
    "GP_PASSWORD",
    "GP_USER_AGENT",
    "GP_CLIENT_OS",
    "GP_OS_VERSION",
    "GP_CLIENT_VERSION",
    "GP_COMPUTER",
    "GP_IGNORE_TLS_ERRORS",
    "GP_CERTIFICATE",
    "GP_SSLKEY",
    "GP_KEY_PASSWORD",
    "GP_TOKEN_SENTINELS",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, name: str, text: str) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def test_env_only_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GP_PORTAL", "vpn.example.com/global-protect/login.esp")
    monkeypatch.setenv("GP_USERNAME", "alice")
    monkeypatch.setenv("GP_CLIENT_OS", "Windows")
    monkeypatch.setenv("GP_IGNORE_TLS_ERRORS", "yes")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    cfg = load_config(None)
    assert cfg.require_portal() == "https://vpn.example.com"
    assert cfg.auth.username == "alice"
    assert cfg.gp.client_os == "Windows"
    assert cfg.gp.ignore_tls_errors is True
    assert cfg.logging.level == "DEBUG"


def test_missing_config_file_falls_back_to_env(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "nope.yaml")
    assert cfg.gp.portal == ""
    with pytest.raises(ValueError):
        cfg.require_portal()


def test_yaml_overrides_env_and_expands_vars(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GP_PORTAL", "env-portal.example.com")
    monkeypatch.setenv("CORP_GW", "gw-us.example.com")
    cfg_path = _write(
        tmp_path,
        "cfg.yaml",
        """
gp:
  portal: "https://yaml-portal.example.com:8443/"
  gateway: "${CORP_GW}"
  client_os: "Mac"
  computer: "laptop-7"
  extra_params:
    preferred-ip: "10.0.0.5"
auth:
  username: "bob"
""",
    )
    cfg = load_config(cfg_path)
    assert cfg.gp.portal == "https://yaml-portal.example.com:8443"
    assert cfg.gp.gateway == "gw-us.example.com"
    assert cfg.gp.client_os == "Mac"
    assert cfg.auth.username == "bob"

    params = cfg.to_gp_params(is_gateway=True)
    assert params.computer == "laptop-7"
    assert params.client_os == "Mac"
    assert params.is_gateway is True
    assert params.to_params()["preferred-ip"] == "10.0.0.5"
    assert params.token_sentinels == DEFAULT_TOKEN_SENTINELS


def test_unset_computer_uses_hostname_default() -> None:
    params = load_config(None).to_gp_params()
    assert params.computer  # hostname
    assert params.certificate is None
    assert params.os_version is None


def test_token_sentinels_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GP_TOKEN_SENTINELS", ",(null),-1,empty,none")
    params = load_config(None).to_gp_params()
    assert params.token_sentinels == frozenset({"", "(null)", "-1", "empty", "none"})


def test_parse_sentinels_env() -> None:
    assert _parse_sentinels_env("") is None
    assert _parse_sentinels_env('["", "(null)"]') == ["", "(null)"]
    assert _parse_sentinels_env("(null), -1") == ["(null)", "-1"]
    # Not valid JSON: treated as a comma list.
    assert _parse_sentinels_env("[x, y") == ["[x", "y"]
