"""HTTP transport — bounded, retrying GET against the release host.

Bridge boundary
---------------
``requests.Session`` is wrapped behind ``HttpTransport`` so resolution code
depends on a single ``fetch(url) -> bytes`` call and tests can inject a fake
session.

Retry policy:

- Connection errors, timeouts, 5xx responses and bodies broken mid-transfer
  (chunked encoding or content decoding errors) are transient and retried
  up to ``max_retries`` times with exponential backoff and jitter.
- Any other ``requests`` failure (invalid URL, redirect loop, ...) raises
  ``NetworkError`` at once.
- 4xx responses are never retried.  404 raises ``RemoteNotFoundError`` so
  operators can tell "release doesn't cover this" from "host is down".
- Every request carries ``timeout`` so an unreachable host cannot hang the
  surrounding build.

Retries live in ``fetch`` rather than in a urllib3 ``Retry``: a body that
breaks while ``requests`` reads it never reaches urllib3's retry logic.  An
owned session mounts an ``HTTPAdapter`` for connection pooling with urllib3
retries switched off.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from xforge_precompiled.core.errors import NetworkError, RemoteNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_BASE = 0.5
DEFAULT_BACKOFF_MAX = 8.0
DEFAULT_POOL_SIZE = 4

_USER_AGENT = "xforge-precompiled"

TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


def compute_delay(attempt: int, base: float, max_delay: float) -> float:
    """Exponential backoff with equal jitter.

    attempt: 1-based attempt number that just failed
    """
    delay = min(base * (2 ** (max(attempt, 1) - 1)), max_delay)
    return max(0.0, random.uniform(delay / 2.0, delay))


def build_session(pool_size: int = DEFAULT_POOL_SIZE) -> requests.Session:
    """A pooled session whose adapter never retries on its own."""
    session = requests.Session()
    session.headers["User-Agent"] = _USER_AGENT
    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=Retry(total=0, read=False, raise_on_status=False),
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class HttpTransport:
    """Fetches release files over HTTP(S).

    Parameters
    ----------
    session:
        Object with a ``requests.Session``-compatible ``get``.  A pooled
        session from ``build_session`` is created when omitted.
    timeout:
        Per-request timeout in seconds.
    max_retries:
        Retries after the first attempt for transient failures.
    backoff_base, backoff_max:
        Backoff schedule in seconds.
    sleep:
        Injected for tests; defaults to ``time.sleep``.
    """

    def __init__(
        self,
        session: Any | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        backoff_max: float = DEFAULT_BACKOFF_MAX,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session = session if session is not None else build_session()
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._sleep = sleep

    def fetch(self, url: str) -> bytes:
        """GET *url* and return the body, retrying transient failures."""
        attempts = self._max_retries + 1
        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                response = self._session.get(url, timeout=self._timeout)
                status = response.status_code
                body = response.content if 200 <= status < 300 else b""
            except TRANSIENT_ERRORS as exc:
                last_error = f"{type(exc).__name__}: {exc}"
            except requests.RequestException as exc:
                raise NetworkError(
                    f"Request failed: {url} ({type(exc).__name__}: {exc})", url=url
                ) from exc
            else:
                if 200 <= status < 300:
                    return body
                if status == 404:
                    raise RemoteNotFoundError(
                        f"Not found (HTTP 404): {url}", url=url, status=status
                    )
                if 400 <= status < 500:
                    raise NetworkError(
                        f"Request rejected (HTTP {status}): {url}", url=url, status=status
                    )
                last_error = f"HTTP {status}"

            if attempt < attempts:
                delay = compute_delay(attempt, self._backoff_base, self._backoff_max)
                logger.debug(
                    "Transient failure fetching %s (%s); retry %d/%d in %.2fs",
                    url, last_error, attempt, self._max_retries, delay,
                )
                self._sleep(delay)

        raise NetworkError(
            f"Download failed after {attempts} attempt(s): {url} ({last_error})",
            url=url,
        )

    def close(self) -> None:
        close = getattr(self._session, "close", None)
        if close is not None:
            close()
