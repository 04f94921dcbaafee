"""
HTTP fetching with bounded timeouts and linear-backoff retries.

Every attempt is bounded by the timeout. Non-2xx responses and transport
errors are retried, waiting base_delay * attempt between attempts. The final
failure is surfaced: fetch_url returns it on the FetchResult and fetch_text
raises FetchError. There is no circuit breaking at this layer; the crawl
health tracker handles that one level up.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from ..errors import FetchError

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.9,en;q=0.8",
    "Cache-Control": "no-cache",
}


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code of the last response, or None
        text: The response body text, or None on error
        error: Error message if the fetch failed, None on success
        attempts: Number of attempts made
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None
    attempts: int = 1

    def raise_for_error(self) -> str:
        """Return the body text, or raise FetchError if the fetch failed."""
        if self.error is not None or self.text is None:
            raise FetchError(self.url, self.error or "empty response", self.status_code)
        return self.text


async def fetch_url(
    url: str,
    timeout: float = 10.0,
    retries: int = 2,
    headers: dict[str, str] | None = None,
    base_delay: float = 0.5,
    client: httpx.AsyncClient | None = None,
    trust_env: bool = True,
) -> FetchResult:
    """Fetch a URL with retry logic.

    Args:
        url: The URL to fetch
        timeout: Bound in seconds on each single attempt
        retries: Number of retry attempts after the initial failure
        headers: Extra headers, merged over DEFAULT_HEADERS
        base_delay: Delay unit; the wait before retry n is base_delay * n
        client: Optional shared client (the caller keeps ownership)
        trust_env: Whether to respect system proxy settings when creating a client

    Returns:
        FetchResult with text on success or error message on failure
    """
    merged_headers = {**DEFAULT_HEADERS, **(headers or {})}
    last_error: str | None = None
    last_status: int | None = None
    attempts = 0

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(follow_redirects=True, trust_env=trust_env)

    try:
        for attempt in range(retries + 1):
            attempts = attempt + 1
            try:
                resp = await asyncio.wait_for(
                    client.get(url, headers=merged_headers, timeout=timeout),
                    timeout=timeout,
                )
                last_status = resp.status_code
                if resp.is_success:
                    return FetchResult(
                        url=url,
                        status_code=resp.status_code,
                        text=resp.text,
                        error=None,
                        attempts=attempts,
                    )
                last_error = f"HTTP {resp.status_code}"
            except asyncio.TimeoutError:
                last_error = f"TimeoutError: no response within {timeout}s"
            except httpx.HTTPError as exc:
                last_error = f"{type(exc).__name__}: {exc}"

            if attempt < retries:
                # Linear backoff: base_delay, 2 * base_delay, ...
                await asyncio.sleep(base_delay * (attempt + 1))
    finally:
        if owns_client:
            await client.aclose()

    return FetchResult(
        url=url,
        status_code=last_status,
        text=None,
        error=last_error,
        attempts=attempts,
    )


async def fetch_text(
    url: str,
    timeout: float = 10.0,
    retries: int = 2,
    headers: dict[str, str] | None = None,
    base_delay: float = 0.5,
    client: httpx.AsyncClient | None = None,
    trust_env: bool = True,
) -> str:
    """Fetch a URL and return its body, raising FetchError on final failure."""
    result = await fetch_url(
        url,
        timeout=timeout,
        retries=retries,
        headers=headers,
        base_delay=base_delay,
        client=client,
        trust_env=trust_env,
    )
    return result.raise_for_error()
