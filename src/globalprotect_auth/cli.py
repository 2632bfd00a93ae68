from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import os
import socket
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import AppConfig, load_config
from .credential import PreloginCredential, is_pkcs11_uri
from .errors import HipRequiredError, PortalError
from .flow import LoginFlow, TunnelTarget
from .logging_config import configure_logging
from .portal.prelogin import SamlPrelogin, StandardPrelogin, prelogin
from .runtime import (
    HIP_WRAPPER_ENV,
    check_executable,
    detect_openconnect_version,
    find_csd_wrapper,
    find_vpnc_script,
)
from .util.host import get_linux_os_string


logger = logging.getLogger("globalprotect_auth")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="globalprotect-auth")
    p.add_argument(
        "--env-file",
        default=".env",
        help="Path to a dotenv file (default: .env). If missing, env vars must already be set.",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pre = sub.add_parser("prelogin", help="Ask the portal which authentication method it expects")
    pre.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    pre.add_argument("--portal", default="", help="Portal host (overrides GP_PORTAL / gp.portal)")
    pre.add_argument("--gateway", action="store_true", help="Probe a gateway (/ssl-vpn/prelogin.esp) instead of a portal")

    login = sub.add_parser(
        "login",
        help="Authenticate against portal + gateway and print the cookie for the tunnel engine",
    )
    login.add_argument("--config", default="config.yaml", help="Path to YAML config (default: config.yaml)")
    login.add_argument("--portal", default="", help="Portal host (overrides GP_PORTAL / gp.portal)")
    login.add_argument("--gateway", default="", help="Gateway name or address (default: highest priority from the portal)")
    login.add_argument("--user", default="", help="Username (overrides GP_USERNAME; prompted if missing)")
    login.add_argument(
        "--prelogin-cookie",
        default="",
        help="Result of an external SAML login (prelogin-cookie value). Prompted for when the portal uses SAML.",
    )
    login.add_argument("--no-verify", action="store_true", help="Ignore invalid server certificates")

    diagnose = sub.add_parser("diagnose", help="Print runtime environment details (helpers, certificate, openconnect)")
    diagnose.add_argument("--certificate", default="", help="Certificate input to classify (file path or PKCS#11 URI)")

    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env_path = Path(args.env_file)
    if env_path.exists():
        load_dotenv(env_path)

    # Default logging: can be overridden once config is loaded.
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    if args.cmd == "diagnose":
        _diagnose(args.certificate)
        return 0

    try:
        cfg = load_config(args.config)
        configure_logging(level=cfg.logging.level, file_path=cfg.logging.file_path or None)
        portal = args.portal or cfg.gp.portal
        if not portal:
            raise SystemExit("No portal configured. Set GP_PORTAL in .env, gp.portal in config.yaml, or pass --portal.")

        if args.cmd == "prelogin":
            gp_params = cfg.to_gp_params(is_gateway=bool(args.gateway))
            result = asyncio.run(prelogin(portal, gp_params))
            if isinstance(result, SamlPrelogin):
                print(f"method=saml ({result.saml_auth_method})")
                print(f"region={result.region}")
                print(f"default_browser={'yes' if result.support_default_browser else 'no'}")
                print(f"saml_request={result.saml_request}")
            else:
                print("method=standard")
                print(f"region={result.region}")
            return 0

        if args.cmd == "login":
            target = asyncio.run(_login(cfg, portal=portal, args=args))
            logger.info("Login complete (gateway=%s)", target.server)
            print(target.cookie)
            print(
                "\nAuthentication cookie obtained. Connect with:\n\n"
                f'    openconnect --protocol=gp --usergroup=gateway {target.server} --cookie "<cookie above>"\n',
                file=sys.stderr,
            )
            return 0
    except HipRequiredError as e:
        wrapper = find_csd_wrapper() or f"<not found; set {HIP_WRAPPER_ENV}>"
        print(f"HIP report required by the portal: {e.reason}", file=sys.stderr)
        print(f"Submit a HIP report (wrapper: {wrapper}) and retry.", file=sys.stderr)
        return 1
    except PortalError as e:
        print(f"{args.cmd} failed: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        # Bad config values (pydantic ValidationError) and malformed portal addresses.
        print(f"{args.cmd} failed: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130

    raise AssertionError("Unhandled command")


async def _prompt(prompt: str, *, secret: bool = False) -> str:
    # Terminal prompts block; keep them off the event loop thread.
    read = getpass.getpass if secret else input
    answer = await asyncio.to_thread(read, prompt)
    return answer.strip()


async def _login(cfg: AppConfig, *, portal: str, args: argparse.Namespace) -> TunnelTarget:
    overrides: dict = {}
    if args.no_verify:
        overrides["ignore_tls_errors"] = True
    gp_params = cfg.to_gp_params(**overrides)
    username = args.user or cfg.auth.username

    async def _password(result: StandardPrelogin) -> str:
        if cfg.auth.password:
            return cfg.auth.password
        return await _prompt(f"{result.label_password}: ", secret=True)

    async def _saml(result: SamlPrelogin) -> PreloginCredential:
        cookie = args.prelogin_cookie
        user = username
        if not cookie:
            print(f"Complete the SAML login in a browser:\n\n    {result.saml_request}\n", file=sys.stderr)
            user = user or await _prompt("SAML username: ")
            cookie = await _prompt("prelogin-cookie: ", secret=True)
        return PreloginCredential(username=user, prelogin_cookie=cookie)

    async def _mfa(message: str) -> str:
        return await _prompt(f"{message or 'MFA code'}: ")

    if not username:
        username = await _prompt("Username: ")

    flow = LoginFlow(gp_params)
    return await flow.authenticate(
        portal,
        username=username,
        password_provider=_password,
        saml_handler=_saml,
        mfa_code_provider=_mfa,
        gateway=args.gateway or cfg.gp.gateway or None,
    )


def _diagnose(certificate: str) -> None:
    print("== globalprotect-auth diagnose ==")
    print(f"host.os_version={get_linux_os_string()}")
    print(f"host.device={socket.gethostname()}")

    if certificate and is_pkcs11_uri(certificate):
        print("certificate.mode=pkcs11-uri")
    elif certificate:
        print("certificate.mode=file-path")
        print(f"certificate.path={certificate}")
        print(f"certificate.exists={str(Path(certificate).exists()).lower()}")
    else:
        print("certificate.mode=not-specified")

    print(f"runtime.vpnc_script={find_vpnc_script() or '<not-found>'}")

    # Discovery skips an unusable override without a word; report it here.
    override = os.getenv(HIP_WRAPPER_ENV, "")
    if override:
        print(f"runtime.hip_wrapper_override={override}")
        try:
            check_executable(override)
        except PermissionError as e:
            print(f"runtime.hip_wrapper_override.error={e}")
        else:
            if not Path(override).is_file():
                print("runtime.hip_wrapper_override.error=not an existing file")
    print(f"runtime.hip_wrapper={find_csd_wrapper() or '<not-found>'}")
    print(f"runtime.openconnect={detect_openconnect_version() or '<not-detected>'}")


if __name__ == "__main__":
    raise SystemExit(main())
