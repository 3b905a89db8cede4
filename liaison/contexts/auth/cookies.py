"""
Set-Cookie parsing and encoding.

A single Set-Cookie header value may carry several cookies joined by commas,
which collides with the commas inside Expires dates. split_set_cookie_string()
only splits on a comma that is followed by a ``name=`` token.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Dict, Iterable, List, Optional, Union


@dataclass(frozen=True)
class Cookie:
    """One cookie as received in a Set-Cookie header."""

    name: str
    value: str
    expires_at: Optional[datetime] = None
    max_age: Optional[int] = None
    domain: Optional[str] = None
    path: Optional[str] = None
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        True if the cookie carries an Expires date that has passed.

        Max-Age is not considered: it is relative to the moment the header was
        received, which is unknown once a cookie has been persisted.
        """
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now > self.expires_at

    def to_set_cookie(self) -> str:
        """Serialize back into a Set-Cookie header value."""
        parts = [f"{self.name}={self.value}"]
        if self.expires_at is not None:
            parts.append(f"Expires={format_datetime(self.expires_at.astimezone(timezone.utc), usegmt=True)}")
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.secure:
            parts.append("Secure")
        if self.http_only:
            parts.append("HttpOnly")
        if self.same_site:
            parts.append(f"SameSite={self.same_site}")
        return "; ".join(parts)


CookieJar = Dict[str, Cookie]


def split_set_cookie_string(set_cookie: Union[str, Iterable[str]]) -> List[str]:
    """
    Split a (possibly comma-joined) Set-Cookie value into individual cookies.

    Args:
        set_cookie: Raw header value, or several header values

    Returns:
        List of single-cookie Set-Cookie strings

    Example:
        >>> split_set_cookie_string("a=1; Expires=Wed, 21 Oct 2015 07:28:00 GMT, b=2")
        ['a=1; Expires=Wed, 21 Oct 2015 07:28:00 GMT', 'b=2']
    """
    if not isinstance(set_cookie, str):
        return [c for value in set_cookie for c in split_set_cookie_string(value)]

    cookies = []
    start = 0
    length = len(set_cookie)

    for pos, char in enumerate(set_cookie):
        if char != ",":
            continue

        token_start = pos + 1
        while token_start < length and set_cookie[token_start].isspace():
            token_start += 1

        token_end = token_start
        while token_end < length and set_cookie[token_end] not in "=;,":
            token_end += 1

        token = set_cookie[token_start:token_end]
        if token_end < length and set_cookie[token_end] == "=" and token and not any(c.isspace() for c in token):
            cookies.append(set_cookie[start:pos].strip())
            start = token_start

    tail = set_cookie[start:].strip()
    if tail:
        cookies.append(tail)

    return [c for c in cookies if c]


def _parse_expires(value: str) -> Optional[datetime]:
    try:
        expires = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if expires is None:
        return None
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return expires


def parse_set_cookie(set_cookie: str) -> Optional[Cookie]:
    """
    Parse one Set-Cookie string.

    The value is kept verbatim (surrounding quotes included) so it can be sent
    back exactly as received.

    Returns:
        Cookie, or None if the string has no cookie name
    """
    name_value, *attributes = set_cookie.split(";")
    name, _, value = name_value.partition("=")
    name = name.strip()
    if not name:
        return None

    fields = {}
    for attribute in attributes:
        key, _, attr_value = attribute.partition("=")
        key = key.strip().lower()
        attr_value = attr_value.strip()

        if key == "expires":
            fields["expires_at"] = _parse_expires(attr_value)
        elif key == "max-age":
            try:
                fields["max_age"] = int(attr_value)
            except ValueError:
                pass
        elif key == "domain":
            fields["domain"] = attr_value or None
        elif key == "path":
            fields["path"] = attr_value or None
        elif key == "secure":
            fields["secure"] = True
        elif key == "httponly":
            fields["http_only"] = True
        elif key == "samesite":
            fields["same_site"] = attr_value or None

    return Cookie(name=name, value=value.strip(), **fields)


def parse_cookies(set_cookie: Union[str, Iterable[str]], jar: Optional[CookieJar] = None) -> CookieJar:
    """
    Parse Set-Cookie value(s) into a cookie jar.

    Args:
        set_cookie: Raw header value(s)
        jar: Existing jar to merge into; it is not modified

    Returns:
        New jar keyed by cookie name, later cookies overwriting earlier ones
    """
    merged = dict(jar or {})
    for raw in split_set_cookie_string(set_cookie):
        cookie = parse_set_cookie(raw)
        if cookie is not None:
            merged[cookie.name] = cookie
    return merged


def serialize_cookies(jar: CookieJar) -> str:
    """Serialize a jar into one comma-joined Set-Cookie string."""
    return ", ".join(cookie.to_set_cookie() for cookie in jar.values())


def encode_cookies(jar: CookieJar) -> str:
    """Encode a jar as a Cookie request header value (``a=1; b=2``)."""
    return "; ".join(f"{cookie.name}={cookie.value}" for cookie in jar.values())


def strip_quotes(value: str) -> str:
    return value.replace('"', "")
