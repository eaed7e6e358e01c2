"""Browser side of the SSO handshake.

The user completes the identity provider login (including any 2FA) in a
real browser window while we poll its cookie jar for the token cookie
named by the gateway.
"""

import os
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .errors import BrowserError, LoginCancelled, LoginTimeout
from .logs import get_logger

ENGINES = ("firefox", "chromium", "webkit")
POLL_INTERVAL = 0.01

SYSTEM_BROWSER_PATHS = ["/var/cache/ms-playwright", "/opt/ms-playwright", "/usr/share/ms-playwright"]


@dataclass(frozen=True)
class TokenCookie:
    name: str
    value: str


class PlaywrightSession:
    """A launched browser with a single context and page."""

    def __init__(self, playwright, browser, context, page, log=None):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._log = log or get_logger()
        self.closed = False

    def navigate(self, url: str):
        try:
            self._page.goto(url, wait_until="commit")
        except PlaywrightError as e:
            # The IdP may keep redirecting; the window stays usable
            self._log.warning("navigation did not complete", url=url, error=str(e))

    def cookies(self) -> list:
        try:
            return self._context.cookies()
        except PlaywrightError as e:
            raise BrowserError(f"Could not get cookies from browser context: {e}")

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self._browser.close()
        except PlaywrightError as e:
            self._log.debug("browser already gone", error=str(e))
        finally:
            self._playwright.stop()


def resolve_browsers_path() -> Optional[str]:
    """Point Playwright at the invoking user's browser cache.

    Under sudo the browsers installed by the real user live in their home,
    not root's. An explicit ``PLAYWRIGHT_BROWSERS_PATH`` is left alone.

    Returns:
        The path in effect, or None to use Playwright's default
    """
    if os.environ.get("PLAYWRIGHT_BROWSERS_PATH"):
        return os.environ["PLAYWRIGHT_BROWSERS_PATH"]

    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        try:
            import pwd
            home = pwd.getpwnam(sudo_user).pw_dir
        except (KeyError, ImportError):
            return None
        path = os.path.join(home, ".cache", "ms-playwright")
        os.environ["PLAYWRIGHT_BROWSERS_PATH"] = path
        return path

    if os.environ.get("USER", "root") != "root":
        return None

    # Plain root: look for a system-wide install
    for path in SYSTEM_BROWSER_PATHS:
        if os.path.isdir(path):
            os.environ["PLAYWRIGHT_BROWSERS_PATH"] = path
            return path
    return None


@contextmanager
def launch_browser(engine: str = "firefox", headless: bool = False, log=None) -> Iterator[PlaywrightSession]:
    """Launch a browser and yield a session; the browser is closed on exit.

    Raises:
        BrowserError: If Playwright, the browser, its context or page cannot
            be created
    """
    log = log or get_logger()
    if engine not in ENGINES:
        raise BrowserError(f"Unknown browser engine {engine!r}")

    resolve_browsers_path()

    try:
        playwright = sync_playwright().start()
    except PlaywrightError as e:
        raise BrowserError(f"Could not launch playwright: {e}")

    try:
        browser = getattr(playwright, engine).launch(headless=headless)
        context = browser.new_context()
        page = context.new_page()
    except PlaywrightError as e:
        playwright.stop()
        raise BrowserError(f"Could not launch {engine}: {e}")

    log.debug("browser launched", engine=engine, headless=headless)
    session = PlaywrightSession(playwright, browser, context, page, log)
    try:
        yield session
    finally:
        session.close()


def wait_for_token_cookie(
        session,
        cookie_name: str,
        interval: float = POLL_INTERVAL,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
        log=None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
) -> TokenCookie:
    """Poll the browser cookie jar until ``cookie_name`` shows up.

    Only a cookie whose name equals ``cookie_name`` exactly is accepted.

    Args:
        session: Object with a ``cookies()`` method returning dicts with
            ``name`` and ``value`` keys
        cookie_name: Token cookie name from the init reply
        interval: Seconds between polls
        timeout: Seconds to wait, None waits forever
        cancel: Event that aborts the wait when set

    Raises:
        LoginTimeout: If the deadline passes first
        LoginCancelled: If ``cancel`` gets set first
        BrowserError: If the cookie jar cannot be read
    """
    log = log or get_logger()
    deadline = None if timeout is None else clock() + timeout

    while True:
        for cookie in session.cookies():
            if cookie.get("name") == cookie_name:
                log.info("received authentication token cookie from browser")
                return TokenCookie(cookie_name, cookie.get("value", ""))

        if cancel is not None and cancel.is_set():
            raise LoginCancelled("Login wait cancelled")
        if deadline is not None and clock() >= deadline:
            raise LoginTimeout(f"Token cookie {cookie_name!r} not set within {timeout:g}s")

        if cancel is not None:
            cancel.wait(interval)
        else:
            sleep(interval)


def browser_login(
        session,
        login_url: str,
        cookie_name: str,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
        log=None,
        **poll_options,
) -> TokenCookie:
    """Open the IdP login page and wait for the token cookie.

    The browser is closed as soon as the cookie is captured.
    """
    log = (log or get_logger()).bind(stage="login")

    log.info("waiting for authentication token cookie in the browser", login_url=login_url)
    session.navigate(login_url)

    token = wait_for_token_cookie(
        session, cookie_name, timeout=timeout, cancel=cancel, log=log, **poll_options
    )
    session.close()
    return token
