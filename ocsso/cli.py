"""Command line entry point.

Runs the whole handshake and writes an openconnect credential file:

    ocsso-login --server https://vpn.example.com --config ~/vpn.cookie
    openconnect --cookie "$(sed -n 's/^cookie=//p' ~/vpn.cookie)" \\
        --servercert "$(sed -n 's/^servercert=//p' ~/vpn.cookie)" vpn.example.com
"""

import argparse
import os
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .auth import finalization_stage, initialization_stage
from .browser import ENGINES, browser_login, launch_browser
from .config import default_config_path, write_oc_config
from .errors import ConfigWriteError, GatewayError, OcssoError
from .gateway import DEFAULT_CLIENT_VERSION, DEFAULT_TIMEOUT, GatewayClient
from .logs import LOG_FORMATS, LOG_LEVELS, setup_logger


@dataclass(frozen=True)
class Settings:
    server: str
    config: Path
    log_format: str = "text"
    log_level: str = "info"
    browser: str = "firefox"
    headless: bool = False
    login_timeout: Optional[float] = None
    http_timeout: float = DEFAULT_TIMEOUT
    client_version: str = DEFAULT_CLIENT_VERSION


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with status 1 like every other failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="ocsso-login",
        description="Log in to an OpenConnect (AnyConnect) VPN gateway via browser SSO "
                    "and save the session cookie for openconnect",
    )
    parser.add_argument(
        "--server",
        default=os.environ.get("OCSSO_SERVER"),
        help="the OpenConnect VPN server address (env: OCSSO_SERVER)",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("OCSSO_CONFIG"),
        help="where the OpenConnect config file will be saved (env: OCSSO_CONFIG, "
             "default: user cache directory)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=os.environ.get("OCSSO_LOG_FORMAT", "text"),
        help="log format (default: text)",
    )
    parser.add_argument(
        "--log-level",
        choices=list(LOG_LEVELS),
        default=os.environ.get("OCSSO_LOG_LEVEL", "info"),
        help="log level [WARNING: 'debug' level will print the openconnect login cookie] "
             "(default: info)",
    )
    parser.add_argument("--browser", choices=ENGINES, default="firefox", help="browser engine (default: firefox)")
    parser.add_argument("--headless", action="store_true", help="Run browser without a window")
    parser.add_argument(
        "--login-timeout",
        type=float,
        default=0,
        metavar="SECONDS",
        help="give up waiting for the browser login after this long (default: 0, wait forever)",
    )
    parser.add_argument(
        "--http-timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        metavar="SECONDS",
        help=f"timeout for gateway requests (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--ac-version",
        default=DEFAULT_CLIENT_VERSION,
        help=f"AnyConnect version reported to the gateway (default: {DEFAULT_CLIENT_VERSION})",
    )
    return parser


def normalize_server(server: str) -> str:
    """Accept a bare hostname the way openconnect does."""
    server = server.strip()
    if "://" not in server:
        server = f"https://{server}"
    return server


def parse_settings(argv=None) -> Settings:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.server:
        parser.error("--server is required")
    if args.login_timeout < 0:
        parser.error("--login-timeout must not be negative")

    return Settings(
        server=normalize_server(args.server),
        config=Path(args.config).expanduser() if args.config else default_config_path(),
        log_format=args.log_format,
        log_level=args.log_level,
        browser=args.browser,
        headless=args.headless,
        login_timeout=args.login_timeout or None,
        http_timeout=args.http_timeout,
        client_version=args.ac_version,
    )


def authenticate(
        settings: Settings,
        log,
        client: Optional[GatewayClient] = None,
        browser_factory=None,
        cancel: Optional[threading.Event] = None,
) -> Path:
    """Run the full handshake and write the credential file.

    The browser is only launched once the gateway has answered the init
    request, and it is closed on every path out of the login wait.

    Returns:
        Path of the written credential file

    Raises:
        OcssoError: From whichever stage failed; later stages do not run
    """
    if client is None:
        client = GatewayClient(settings.client_version, settings.http_timeout, log=log)
    if browser_factory is None:
        browser_factory = launch_browser

    init_resp, target_url = initialization_stage(client, settings.server, log)

    with browser_factory(settings.browser, settings.headless, log=log) as session:
        token = browser_login(
            session,
            init_resp.login_url,
            init_resp.token_cookie_name,
            timeout=settings.login_timeout,
            cancel=cancel,
            log=log,
        )

    final_resp = finalization_stage(client, target_url, token.value, init_resp.opaque.value, log)
    log.info("received openconnect server fingerprint and connection cookie")

    path = write_oc_config(final_resp.cookie, final_resp.fingerprint, target_url, settings.config)
    log.info("written authentication details to file", file=str(path))
    return path


def main(argv=None) -> int:
    settings = parse_settings(argv)
    log = setup_logger(settings.log_format, settings.log_level)
    log.info("logger initialized")

    try:
        authenticate(settings, log)
    except GatewayError as e:
        log.error("authentication failed", error=str(e), url=e.url)
        return 1
    except ConfigWriteError as e:
        log.error("authentication failed", error=str(e), file=e.path)
        return 1
    except OcssoError as e:
        log.error("authentication failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        log.error("interrupted")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
