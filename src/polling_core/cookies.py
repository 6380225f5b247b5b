"""
Cookie jar for credentialed polling.

Hosts without a shared cookie store still need the cookies a server
sets on one polling request to be sent back on the next. CookieJar
keeps them per transport: ``parse_cookies`` is fed the ``Set-Cookie``
values of each response and ``add_cookies`` writes the ``cookie``
header of each request.
"""

import http.cookies
import logging
import time
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Callable, Dict, Iterable, Iterator, MutableMapping, Optional, Union

from typing_extensions import Protocol, runtime_checkable

from .native.base import NativeRequest

logger = logging.getLogger(__name__)


@runtime_checkable
class CookieJarProtocol(Protocol):
    """What a RequestLifecycle needs from a cookie jar."""

    def add_cookies(self, request: NativeRequest) -> None: ...

    def parse_cookies(self, values: Optional[Iterable[str]]) -> None: ...


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    expires: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires is not None and self.expires <= now


def parse_set_cookie(header: str, now: float) -> Iterator[Cookie]:
    """
    Parse one Set-Cookie value.

    Max-Age takes precedence over Expires. Malformed values yield
    nothing.
    """
    jar = http.cookies.SimpleCookie()
    try:
        jar.load(header)
    except http.cookies.CookieError as e:
        logger.debug(f"Ignoring malformed Set-Cookie {header!r}: {e}")
        return

    for name, morsel in jar.items():
        expires = None
        max_age = morsel["max-age"]
        if max_age:
            try:
                expires = now + int(max_age)
            except ValueError:
                logger.debug(f"Ignoring invalid Max-Age {max_age!r} on cookie {name}")
        if expires is None and morsel["expires"]:
            try:
                expires = parsedate_to_datetime(morsel["expires"]).timestamp()
            except (TypeError, ValueError):
                logger.debug(f"Ignoring invalid Expires {morsel['expires']!r} on cookie {name}")
        yield Cookie(name=name, value=morsel.value, expires=expires)


class CookieJar:
    """
    In-memory cookie jar keyed by cookie name.

    Shared by every request of one transport; only the jar itself holds
    state, so concurrent requests cannot interfere with each other
    beyond the order in which their responses arrive.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._cookies: Dict[str, Cookie] = {}

    def parse_cookies(self, values: Optional[Union[str, Iterable[str]]]) -> None:
        """Store the cookies of the given Set-Cookie values."""
        if not values:
            return
        if isinstance(values, str):
            values = [values]

        now = self._clock()
        for header in values:
            for cookie in parse_set_cookie(header, now):
                if cookie.is_expired(now):
                    self._cookies.pop(cookie.name, None)
                else:
                    self._cookies[cookie.name] = cookie

    def add_cookies(self, request: NativeRequest) -> None:
        """Set the cookie header on a native request."""
        header = self.cookie_header()
        if header:
            request.set_request_header("cookie", header)

    def append_cookies(self, headers: MutableMapping[str, str]) -> None:
        """Set the cookie header on a plain header mapping."""
        header = self.cookie_header()
        if header:
            headers["cookie"] = header

    def cookie_header(self) -> Optional[str]:
        cookies = [f"{cookie.name}={cookie.value}" for cookie in self.cookies()]
        if not cookies:
            return None
        return "; ".join(cookies)

    def cookies(self) -> Iterator[Cookie]:
        """Iterate live cookies, dropping expired ones."""
        now = self._clock()
        for name, cookie in list(self._cookies.items()):
            if cookie.is_expired(now):
                del self._cookies[name]
                continue
            yield cookie

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        for cookie in self.cookies():
            if cookie.name == name:
                return cookie.value
        return default

    def clear(self) -> None:
        self._cookies.clear()

    def __contains__(self, name: object) -> bool:
        return any(cookie.name == name for cookie in self.cookies())

    def __len__(self) -> int:
        return sum(1 for _ in self.cookies())

    def __repr__(self) -> str:
        return f"<CookieJar {[cookie.name for cookie in self.cookies()]}>"
