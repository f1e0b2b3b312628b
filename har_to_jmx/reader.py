"""HAR reader: turns HAR text into normalized request records.

Field access is best effort. Optional fields (post data, headers, cookies)
may be missing on any entry; only the request URL is required.
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple
from urllib.parse import urlparse

from .errors import (
    MalformedEntryError,
    MalformedHeaderError,
    MalformedInputError,
    MalformedUrlError,
    MissingEntriesError,
)

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "ws": 80,
    "wss": 443,
    "ftp": 21,
}
DEFAULT_METHOD = "GET"


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str


@dataclass(frozen=True)
class RequestRecord:
    """One HAR entry, reduced to what a sampler needs."""

    url: str
    method: str
    port: str
    post_body: Optional[str] = None
    headers: Tuple[str, ...] = ()
    cookies: Tuple[Cookie, ...] = ()


def read_all_text(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"HAR is not valid UTF-8: {e}") from e


def load_har(raw) -> object:
    """Decode HAR text (``str`` or ``bytes``) into plain Python objects."""
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedInputError(f"HAR is not valid UTF-8: {e}") from e
    elif raw.startswith("\ufeff"):
        raw = raw[1:]
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"HAR is not valid JSON: {e}") from e


def get_field(node, path: str) -> Optional[str]:
    """Walk a dotted ``path`` through nested objects.

    Returns ``None`` as soon as a segment is missing, the current node is not
    an object, or the final value is JSON null. Strings come back verbatim,
    anything else as compact JSON text.
    """
    current = node
    for segment in path.split("."):
        if not isinstance(current, dict) or segment not in current:
            return None
        current = current[segment]
    if current is None:
        return None
    if isinstance(current, str):
        return current
    return json.dumps(current, ensure_ascii=False, separators=(",", ":"))


def _get_list(node, path: str) -> list:
    current = node
    for segment in path.split("."):
        if not isinstance(current, dict):
            return []
        current = current.get(segment)
    return current if isinstance(current, list) else []


def locate_entries(har) -> list:
    log = har.get("log") if isinstance(har, dict) else None
    if not isinstance(log, dict) or "entries" not in log:
        raise MissingEntriesError("HAR has no log.entries")
    entries = log["entries"]
    if not isinstance(entries, list):
        raise MalformedInputError(
            f"log.entries must be an array, got {type(entries).__name__}"
        )
    return entries


def url_port(url: Optional[str]) -> str:
    """Port of ``url``: the explicit one, else the scheme's default."""
    if not url:
        raise MalformedUrlError("request.url is missing")
    try:
        parsed = urlparse(url)
        port = parsed.port
    except ValueError as e:
        raise MalformedUrlError(f"cannot parse {url!r}: {e}") from e
    scheme = (parsed.scheme or "").lower()
    if not scheme or not parsed.hostname:
        raise MalformedUrlError(f"not an absolute URL: {url!r}")
    if port is None:
        port = DEFAULT_PORTS.get(scheme)
    if port is None:
        raise MalformedUrlError(f"no default port for scheme {scheme!r}: {url!r}")
    return str(port)


def extract_headers(entry) -> Tuple[str, ...]:
    headers = []
    for h in _get_list(entry, "request.headers"):
        name = get_field(h, "name")
        if not name:
            raise MalformedHeaderError(f"header without a name: {h!r}")
        value = get_field(h, "value") or ""
        headers.append(f"{name}: {value}")
    return tuple(headers)


def extract_cookies(entry) -> Tuple[Cookie, ...]:
    cookies = []
    for c in _get_list(entry, "request.cookies"):
        name = get_field(c, "name")
        value = get_field(c, "value")
        if name is None or value is None:
            continue
        cookies.append(Cookie(name, value))
    return tuple(cookies)


def extract_record(entry) -> RequestRecord:
    url = get_field(entry, "request.url")
    port = url_port(url)
    return RequestRecord(
        url=url,
        method=get_field(entry, "request.method") or DEFAULT_METHOD,
        port=port,
        post_body=get_field(entry, "request.postData.text"),
        headers=extract_headers(entry),
        cookies=extract_cookies(entry),
    )


def iter_records(
    raw,
    on_error: Callable[[int, MalformedEntryError], None] = None,
) -> Iterator[RequestRecord]:
    """Yield a record per HAR entry, in entry order.

    A malformed entry is handed to ``on_error`` and skipped; without a
    callback its error propagates. A HAR with no ``log.entries`` yields
    nothing.
    """
    har = load_har(raw)
    try:
        entries = locate_entries(har)
    except MissingEntriesError as e:
        logger.info("%s, the test plan will have no samplers", e)
        return

    logger.debug("HAR parsed: entries=%d", len(entries))
    for _, record in records_from_entries(entries, on_error):
        yield record


def records_from_entries(
    entries: list,
    on_error: Callable[[int, MalformedEntryError], None] = None,
) -> Iterator[Tuple[int, RequestRecord]]:
    """``(index, record)`` pairs for already located ``entries``; same error
    contract as :func:`iter_records`."""
    for idx, entry in enumerate(entries):
        try:
            record = extract_record(entry)
        except MalformedEntryError as e:
            if e.index is None:
                e.index = idx
            if on_error is None:
                raise
            on_error(idx, e)
            continue
        yield idx, record


def parse(raw, on_error=None) -> list:
    return list(iter_records(raw, on_error))
