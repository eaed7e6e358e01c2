"""HTTP client for the VPN gateway."""

import ssl
import urllib.error
import urllib.request
from typing import Optional

from .errors import GatewayError
from .logs import get_logger

DEFAULT_CLIENT_VERSION = "4.7.00136"
DEFAULT_TIMEOUT = 30.0


def make_headers(client_version: str = DEFAULT_CLIENT_VERSION) -> dict:
    """Headers the gateway expects from an AnyConnect client.

    The body is XML but the gateway wants it announced as a form post.
    """
    return {
        "User-Agent": f"AnyConnect Linux_64 {client_version}",
        "Accept": "*/*",
        "Accept-Encoding": "identity",
        "X-Transcend-Version": "1",
        "X-Aggregate-Auth": "1",
        "X-Support-HTTP-Auth": "true",
        "Content-Type": "application/x-www-form-urlencoded",
    }


class GatewayClient:
    """Talks to the gateway over plain urllib.

    Every failure is raised as ``GatewayError``; nothing is retried.
    """

    def __init__(
            self,
            client_version: str = DEFAULT_CLIENT_VERSION,
            timeout: float = DEFAULT_TIMEOUT,
            opener: Optional[urllib.request.OpenerDirector] = None,
            log=None,
    ):
        """Initialize client.

        Args:
            client_version: AnyConnect version announced to the gateway
            timeout: Socket timeout in seconds
            opener: urllib opener, a TLS-verifying one by default
            log: Bound logger
        """
        self.client_version = client_version
        self.timeout = timeout
        if opener is None:
            ctx = ssl.create_default_context()
            opener = urllib.request.build_opener(urllib.request.HTTPSHandler(context=ctx))
        self._opener = opener
        self._log = log or get_logger()

    def _open(self, req: urllib.request.Request, allow_http_error: bool = False):
        try:
            return self._opener.open(req, timeout=self.timeout)
        except urllib.error.HTTPError as e:
            if allow_http_error:
                # Still a response: carries the status and the final URL
                return e
            e.close()
            raise GatewayError(f"{req.get_method()} {req.full_url} returned HTTP {e.code}", req.full_url)
        except (urllib.error.URLError, OSError) as e:
            raise GatewayError(f"{req.get_method()} {req.full_url} failed: {e}", req.full_url)

    def resolve(self, url: str) -> str:
        """Follow redirects from ``url`` and return the final URL.

        Any HTTP status is accepted; only the URL it was served from matters.

        Raises:
            GatewayError: On any transport failure or malformed URL
        """
        try:
            req = urllib.request.Request(url, method="GET")
        except ValueError as e:
            raise GatewayError(f"Invalid server URL {url!r}: {e}", url)

        with self._open(req, allow_http_error=True) as resp:
            target = resp.geturl()
            status = resp.getcode()

        self._log.debug("resolved server url", url=url, target=target, status=status)
        return target

    def post(self, xml_payload: str, url: str) -> bytes:
        """POST an XML document to the gateway and return the raw body.

        Raises:
            GatewayError: On any transport failure or malformed URL
        """
        try:
            req = urllib.request.Request(
                url,
                data=xml_payload.encode("utf-8"),
                headers=make_headers(self.client_version),
                method="POST",
            )
        except ValueError as e:
            raise GatewayError(f"Failed to create http request: {e}", url)

        with self._open(req) as resp:
            try:
                body = resp.read()
            except OSError as e:
                raise GatewayError(f"Failed to read response from {url}: {e}", url)
            final_url = resp.geturl()

        self._log.info("received response from server", url=final_url)
        self._log.debug("received response", url=final_url, body=body.decode("utf-8", "replace"))
        return body
