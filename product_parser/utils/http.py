from __future__ import annotations

import asyncio
from typing import Optional
from urllib.parse import urlparse

from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging
from bs4 import UnicodeDammit

logger = logging.getLogger(__name__)

_SCHEMES = ("http", "https")


def is_absolute_url(link: str) -> bool:
    """True for a well-formed absolute http(s) address with a host."""
    if not link or link != link.strip():
        return False
    try:
        parsed = urlparse(link)
        # Accessing .port validates it (raises ValueError when out of range).
        parsed.port
    except ValueError:
        return False
    return parsed.scheme.lower() in _SCHEMES and bool(parsed.hostname)


async def fetch_page(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 15.0,
    user_agent: Optional[str] = None,
) -> Optional[str]:
    """
    Fetch a URL and return body text. Returns None on any failure; never raises
    for transport problems. Malformed addresses are rejected before any I/O.
    """
    if not is_absolute_url(url):
        logger.error("Invalid address %r, skipping", url)
        return None

    headers = {}
    if user_agent:
        headers["User-Agent"] = user_agent

    try:
        async with session.get(url, headers=headers, timeout=ClientTimeout(total=timeout)) as resp:
            resp.raise_for_status()
            body = await resp.read()
            charset = resp.charset
    except aiohttp.ClientResponseError as exc:
        logger.error("Failed to load page %s: HTTP %s %s", url, exc.status, exc.message)
        return None
    except asyncio.TimeoutError:
        logger.error("Failed to load page %s: timed out after %.1fs", url, timeout)
        return None
    except aiohttp.ClientError as exc:
        logger.error("Failed to load page %s: %r", url, exc)
        return None
    return decode_page(body, charset)


def decode_page(body: bytes, charset: Optional[str] = None) -> str:
    """
    Decode a page body: header charset first, then a <meta> declaration,
    then detection. Undecodable bytes are replaced rather than raised.
    """
    dammit = UnicodeDammit(body, known_definite_encodings=[charset] if charset else [], is_html=True)
    if dammit.unicode_markup is not None:
        return dammit.unicode_markup
    return body.decode("utf-8", errors="replace")


def create_session() -> ClientSession:
    """
    Create a shared aiohttp ClientSession.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    connector = aiohttp.TCPConnector(limit=0)  # unlimited; concurrency bounded by batch width
    return aiohttp.ClientSession(connector=connector)
