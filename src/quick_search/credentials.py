"""Per-source isolated cookie storage persisted as JSON files.

Each source gets its own file under the credentials directory, holding cookie
records in the shape CDP's ``Network.getCookies`` returns (name, value, domain,
path, expires, httpOnly, secure). The same records seed both httpx clients and
hidden browser sessions, so a login captured in one is visible to the other.
"""

import json
import logging
import os
import re
import shutil
import tempfile
import time
from collections.abc import Iterable
from functools import partial
from http.cookiejar import http2time
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx
from anyio import to_thread

from .config import settings

logger = logging.getLogger(__name__)

CookieRecord = dict[str, Any]

# Keys accepted by CDP Network.CookieParam
_CDP_COOKIE_KEYS = ("name", "value", "domain", "path", "expires", "httpOnly", "secure", "sameSite")

# Expiry stamped on records the server asked to delete
EXPIRED = 1.0


def _slugify_id(source_id: str) -> str:
    slug = re.sub(r"[^a-z0-9_-]+", "-", source_id.strip().lower()).strip("-")
    if not slug:
        raise ValueError(f"Invalid source id: {source_id!r}")
    return slug


def _atomic_write_text(path: Path, content: str) -> None:
    """Atomically write text to `path` using temp + fsync + os.replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.tmp.", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def _cookie_key(cookie: CookieRecord) -> tuple[str, str, str]:
    return (cookie["name"], cookie.get("domain", "").lstrip(".").lower(), cookie.get("path") or "/")


def is_expired(cookie: CookieRecord, now: float | None = None) -> bool:
    """Session cookies (no expiry, or -1) never expire here."""
    expires = cookie.get("expires")
    if expires is None or expires <= 0:
        return False
    return expires <= (time.time() if now is None else now)


def domain_matches(cookie_domain: str, host: str) -> bool:
    domain = cookie_domain.lstrip(".").lower()
    host = host.lower()
    return bool(domain) and (host == domain or host.endswith(f".{domain}"))


def _path_matches(cookie_path: str | None, request_path: str) -> bool:
    cookie_path = cookie_path or "/"
    if cookie_path == "/" or request_path == cookie_path:
        return True
    return request_path.startswith(cookie_path.rstrip("/") + "/")


def cookies_matching(cookies: Iterable[CookieRecord], url: str, now: float | None = None) -> list[CookieRecord]:
    """Unexpired cookies from `cookies` that a client would send to `url`."""
    parsed = urlparse(url)
    host = parsed.hostname or ""
    request_path = parsed.path or "/"
    now = time.time() if now is None else now
    return [
        c
        for c in cookies
        if domain_matches(c.get("domain", ""), host) and _path_matches(c.get("path"), request_path) and not is_expired(c, now)
    ]


def _default_path(request_path: str) -> str:
    if not request_path.startswith("/") or request_path.count("/") == 1:
        return "/"
    return request_path[: request_path.rfind("/")]


def parse_set_cookie(header: str, url: str, now: float | None = None) -> CookieRecord | None:
    """Parse one Set-Cookie header received from `url` into a stored record.

    A deletion (``Max-Age<=0`` or an ``Expires`` in the past) comes back as a
    record whose expiry has already passed, which `CredentialStore.merge`
    treats as a delete. Returns None for headers a browser would reject.
    """
    now = time.time() if now is None else now
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()

    pair, *attributes = header.split(";")
    name, sep, value = pair.partition("=")
    name = name.strip()
    if not sep or not name or not host:
        return None

    cookie: CookieRecord = {
        "name": name,
        "value": value.strip(),
        "domain": host,
        "path": _default_path(parsed.path or "/"),
        "expires": -1.0,
        "httpOnly": False,
        "secure": False,
    }
    max_age: int | None = None
    for attribute in attributes:
        key, _, attr_value = attribute.partition("=")
        key = key.strip().lower()
        attr_value = attr_value.strip()
        if key == "domain" and attr_value:
            domain = attr_value.lstrip(".").lower()
            if not domain_matches(domain, host):
                return None
            cookie["domain"] = f".{domain}"
        elif key == "path" and attr_value.startswith("/"):
            cookie["path"] = attr_value
        elif key == "expires":
            timestamp = http2time(attr_value)
            if timestamp is not None:
                cookie["expires"] = float(timestamp) if timestamp > now else EXPIRED
        elif key == "max-age":
            try:
                max_age = int(attr_value)
            except ValueError:
                continue
        elif key == "secure":
            cookie["secure"] = True
        elif key == "httponly":
            cookie["httpOnly"] = True
        elif key == "samesite" and attr_value:
            cookie["sameSite"] = attr_value.capitalize()

    # Max-Age wins over Expires
    if max_age is not None:
        cookie["expires"] = now + max_age if max_age > 0 else EXPIRED
    return cookie


def cookies_set_by(response: httpx.Response) -> list[CookieRecord]:
    """Cookies set along a response's redirect chain, in the order they were received."""
    cookies = []
    for hop in [*response.history, response]:
        url = str(hop.request.url)
        for header in hop.headers.get_list("set-cookie"):
            cookie = parse_set_cookie(header, url)
            if cookie is None:
                logger.debug(f"Ignoring Set-Cookie from {url}: {header.split(';', 1)[0].split('=', 1)[0]}")
            else:
                cookies.append(cookie)
    return cookies


def to_httpx_cookies(cookies: Iterable[CookieRecord]) -> httpx.Cookies:
    jar = httpx.Cookies()
    for cookie in cookies:
        jar.set(cookie["name"], cookie.get("value", ""), domain=cookie.get("domain", ""), path=cookie.get("path") or "/")
    return jar


def to_cdp_cookie_params(cookies: Iterable[CookieRecord]) -> list[CookieRecord]:
    """Strip records down to the keys CDP Network.setCookies accepts."""
    params = []
    for cookie in cookies:
        param = {k: cookie[k] for k in _CDP_COOKIE_KEYS if k in cookie and cookie[k] is not None}
        if param.get("expires", 0) <= 0:
            # CDP treats a missing expiry as a session cookie
            param.pop("expires", None)
        params.append(param)
    return params


class CredentialStore:
    """Manages isolated per-source cookie contexts on disk.

    A context is created lazily by the first merge and survives restarts;
    only `clear()` (logout) removes it.
    """

    def __init__(self, directory: str | Path | None = None):
        """Initialize credential store.

        Args:
            directory: Path to credentials directory. If None, uses settings.
        """
        if directory:
            self.directory = Path(directory).expanduser()
        else:
            self.directory = settings.get_credentials_dir()

        self.directory.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Credentials directory: {self.directory}")

    def _context_path(self, source_id: str) -> Path:
        return self.directory / f"{_slugify_id(source_id)}.json"

    def browser_profile_dir(self, source_id: str) -> Path:
        """Browser profile directory for hidden sessions of a source."""
        return self.directory / "browser" / _slugify_id(source_id)

    def load(self, source_id: str) -> list[CookieRecord]:
        """All stored cookies for a source (empty when no context exists)."""
        path = self._context_path(source_id)
        if not path.exists():
            return []

        try:
            data = json.loads(path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable credential context for {source_id}: {e}")
            return []

        cookies = data.get("cookies", []) if isinstance(data, dict) else []
        return [c for c in cookies if isinstance(c, dict) and isinstance(c.get("name"), str)]

    def cookies_for(self, source_id: str, url: str) -> list[CookieRecord]:
        """Unexpired cookies of a source that would be sent to `url`."""
        return cookies_matching(self.load(source_id), url)

    def merge(self, source_id: str, cookies: Iterable[CookieRecord]) -> int:
        """Upsert cookies into a source's context.

        Cookies are keyed by (name, domain, path); an already-expired incoming
        cookie deletes the stored one, which is how servers clear cookies.

        Returns:
            Number of cookies stored after the merge.
        """
        merged: dict[tuple[str, str, str], CookieRecord] = {_cookie_key(c): c for c in self.load(source_id)}
        now = time.time()
        for cookie in cookies:
            if not cookie.get("name") or not cookie.get("domain"):
                continue
            key = _cookie_key(cookie)
            if is_expired(cookie, now):
                merged.pop(key, None)
            else:
                merged[key] = dict(cookie)

        payload = {"source_id": source_id, "updated_at": now, "cookies": list(merged.values())}
        _atomic_write_text(self._context_path(source_id), json.dumps(payload, indent=2))
        return len(merged)

    def clear(self, source_id: str) -> bool:
        """Destroy a source's context. Returns False when none existed."""
        path = self._context_path(source_id)
        profile_dir = self.browser_profile_dir(source_id)
        existed = path.exists() or profile_dir.exists()
        path.unlink(missing_ok=True)
        shutil.rmtree(profile_dir, ignore_errors=True)
        if not existed:
            return False
        logger.info(f"Cleared credential context for {source_id}")
        return True

    async def aload(self, source_id: str) -> list[CookieRecord]:
        return await to_thread.run_sync(self.load, source_id)

    async def acookies_for(self, source_id: str, url: str) -> list[CookieRecord]:
        return await to_thread.run_sync(self.cookies_for, source_id, url)

    async def amerge(self, source_id: str, cookies: Iterable[CookieRecord]) -> int:
        return await to_thread.run_sync(partial(self.merge, source_id, list(cookies)))

    async def aclear(self, source_id: str) -> bool:
        return await to_thread.run_sync(self.clear, source_id)
