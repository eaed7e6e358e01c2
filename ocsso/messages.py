"""Aggregate-auth XML messages exchanged with the VPN gateway.

The gateway speaks the AnyConnect ``config-auth`` dialect. Two requests are
sent:

- ``init``: announces single-sign-on-v2 support; the reply carries the IdP
  login URL, the name of the cookie that will hold the SSO token and an
  opaque blob.
- ``auth-reply``: echoes the opaque blob back together with the SSO token;
  the reply carries the session cookie and the server certificate hash.
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional
from xml.sax.saxutils import escape

from .errors import ProtocolError

DEVICE_ID = "linux-64"

INIT_TEMPLATE = """
<config-auth client="vpn" type="init" aggregate-auth-version="2">
  <version who="vpn">{version}</version>
  <device-id>{device_id}</device-id>
  <group-select></group-select>
  <group-access>{group_access}</group-access>
  <capabilities>
    <auth-method>single-sign-on-v2</auth-method>
  </capabilities>
</config-auth>
"""

AUTH_REPLY_TEMPLATE = """
<config-auth client="vpn" type="auth-reply" aggregate-auth-version="2">
  <version who="vpn">{version}</version>
  <device-id>{device_id}</device-id>
  <session-token/>
  <session-id/>
  <opaque is-for="sg">{opaque}</opaque>
  <auth>
    <sso-token>{token}</sso-token>
  </auth>
</config-auth>
"""


@dataclass(frozen=True)
class Opaque:
    """Opaque gateway state, kept as the inner XML of ``<opaque>``."""
    value: str


@dataclass(frozen=True)
class InitializationResponse:
    login_url: str
    login_final_url: Optional[str]
    token_cookie_name: str
    opaque: Opaque


@dataclass(frozen=True)
class FinalizationResponse:
    cookie: str
    fingerprint: str


def build_init_request(group_access: str, version: str) -> str:
    """Build the ``init`` request body.

    Args:
        group_access: Resolved gateway URL
        version: AnyConnect client version string
    """
    return INIT_TEMPLATE.format(
        version=escape(version),
        device_id=DEVICE_ID,
        group_access=escape(group_access),
    )


def build_auth_reply(token: str, opaque: str, version: str) -> str:
    """Build the ``auth-reply`` request body.

    The opaque value is already XML and is inserted untouched.
    """
    return AUTH_REPLY_TEMPLATE.format(
        version=escape(version),
        device_id=DEVICE_ID,
        opaque=opaque,
        token=escape(token),
    )


def _parse(body: bytes) -> ET.Element:
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise ProtocolError(f"Invalid XML in gateway reply: {e}", body)
    if root.tag != "config-auth":
        raise ProtocolError(f"Unexpected root element <{root.tag}>", body)
    return root


_OPAQUE_RE = re.compile(r"<opaque\b[^>]*?(?:/>|>(.*?)</opaque\s*>)", re.DOTALL)


def _raw_opaque(body: bytes) -> str:
    """Inner XML of ``<opaque>`` exactly as the gateway sent it."""
    match = _OPAQUE_RE.search(body.decode("utf-8", "replace"))
    if match is None:
        raise ProtocolError("Could not extract <opaque> from gateway reply", body)
    return match.group(1) or ""


def _text(root: ET.Element, path: str) -> Optional[str]:
    value = root.findtext(path)
    if value is None:
        return None
    return value.strip() or None


def _missing(root: ET.Element, fields: list, body: bytes) -> ProtocolError:
    message = f"Gateway reply lacks {', '.join(fields)}"
    error = _text(root, ".//error")
    if error:
        message += f" (gateway said: {error})"
    return ProtocolError(message, body)


def parse_init_response(body: bytes) -> InitializationResponse:
    """Parse the reply to the ``init`` request.

    Raises:
        ProtocolError: If the body is not XML or a required field is missing
    """
    root = _parse(body)

    login_url = _text(root, "auth/sso-v2-login")
    login_final_url = _text(root, "auth/sso-v2-login-final")
    token_cookie_name = _text(root, "auth/sso-v2-token-cookie-name")
    opaque = root.find("opaque")

    missing = [
        name for name, value in (
            ("sso-v2-login", login_url),
            ("sso-v2-token-cookie-name", token_cookie_name),
            ("opaque", opaque),
        ) if value is None
    ]
    if missing:
        raise _missing(root, missing, body)

    return InitializationResponse(
        login_url=login_url,
        login_final_url=login_final_url,
        token_cookie_name=token_cookie_name,
        opaque=Opaque(_raw_opaque(body)),
    )


def parse_final_response(body: bytes) -> FinalizationResponse:
    """Parse the reply to the ``auth-reply`` request.

    Raises:
        ProtocolError: If the body is not XML or a required field is missing
    """
    root = _parse(body)

    cookie = _text(root, "session-token")
    fingerprint = _text(root, ".//server-cert-hash")

    missing = [
        name for name, value in (
            ("session-token", cookie),
            ("server-cert-hash", fingerprint),
        ) if value is None
    ]
    if missing:
        raise _missing(root, missing, body)

    return FinalizationResponse(cookie=cookie, fingerprint=fingerprint)
