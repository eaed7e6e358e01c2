"""Gateway side of the SSO handshake: init and auth-reply stages."""

from typing import Tuple

from .errors import ProtocolError
from .gateway import GatewayClient
from .logs import get_logger
from .messages import (
    FinalizationResponse,
    InitializationResponse,
    build_auth_reply,
    build_init_request,
    parse_final_response,
    parse_init_response,
)


def _body_text(body: bytes) -> str:
    return body.decode("utf-8", "replace")


def initialization_stage(
        client: GatewayClient,
        server: str,
        log=None,
) -> Tuple[InitializationResponse, str]:
    """Resolve the gateway and request the SSO login parameters.

    Args:
        client: Gateway client
        server: Server URL as given by the user (may be an alias)
        log: Bound logger

    Returns:
        (init_response, target_url). ``target_url`` is the redirect-resolved
        server URL and must be used for every later request.

    Raises:
        GatewayError: If the GET or the POST fails
        ProtocolError: If the reply cannot be parsed
    """
    log = (log or get_logger()).bind(stage="initialization")

    target_url = client.resolve(server)
    log.debug("configuring VPN request", target_url=target_url)

    payload = build_init_request(target_url, client.client_version)
    body = client.post(payload, target_url)

    try:
        result = parse_init_response(body)
    except ProtocolError as e:
        log.error("failed to parse init response", error=str(e), body=_body_text(body))
        raise

    log.info(
        "parsed init response",
        login_url=result.login_url,
        login_final_url=result.login_final_url,
        token_cookie_name=result.token_cookie_name,
    )
    log.debug("opaque value", opaque=result.opaque.value)
    return result, target_url


def finalization_stage(
        client: GatewayClient,
        target_url: str,
        token: str,
        opaque: str,
        log=None,
) -> FinalizationResponse:
    """Exchange the SSO token for the VPN session cookie.

    Args:
        client: Gateway client
        target_url: URL returned by ``initialization_stage``
        token: Value of the SSO token cookie
        opaque: Opaque value from the init reply, echoed verbatim
        log: Bound logger

    Raises:
        GatewayError: If the POST fails
        ProtocolError: If the reply cannot be parsed
    """
    log = (log or get_logger()).bind(stage="finalization")

    payload = build_auth_reply(token, opaque, client.client_version)
    body = client.post(payload, target_url)

    try:
        result = parse_final_response(body)
    except ProtocolError as e:
        log.error("failed to parse auth-reply response", error=str(e), body=_body_text(body))
        raise

    log.debug("parsed final response", cookie=result.cookie, fingerprint=result.fingerprint)
    return result
