"""ocsso-login - OpenConnect single-sign-on cookie fetcher.

Core library used by the ``ocsso-login`` command.
"""

from .auth import initialization_stage, finalization_stage
from .browser import (
    TokenCookie,
    browser_login,
    launch_browser,
    wait_for_token_cookie,
)
from .config import default_config_path, write_oc_config
from .errors import (
    OcssoError,
    GatewayError,
    ProtocolError,
    BrowserError,
    LoginTimeout,
    LoginCancelled,
    ConfigWriteError,
)
from .gateway import GatewayClient, make_headers
from .logs import setup_logger
from .messages import (
    InitializationResponse,
    FinalizationResponse,
    Opaque,
    parse_init_response,
    parse_final_response,
)

__all__ = [
    # Stages
    "initialization_stage",
    "finalization_stage",
    # Browser
    "TokenCookie",
    "browser_login",
    "launch_browser",
    "wait_for_token_cookie",
    # Config file
    "default_config_path",
    "write_oc_config",
    # Errors
    "OcssoError",
    "GatewayError",
    "ProtocolError",
    "BrowserError",
    "LoginTimeout",
    "LoginCancelled",
    "ConfigWriteError",
    # Gateway
    "GatewayClient",
    "make_headers",
    # Logging
    "setup_logger",
    # Messages
    "InitializationResponse",
    "FinalizationResponse",
    "Opaque",
    "parse_init_response",
    "parse_final_response",
]
