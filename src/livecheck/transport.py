"""
HTTP transport for manifest and time sync retrieval.

No retries: a caller wanting retries wraps the whole validation run.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import requests
import structlog

from livecheck.infra.exceptions import TransportFailure
from livecheck.infra.settings import settings

_log = structlog.get_logger(__name__)


@runtime_checkable
class Fetcher(Protocol):
    """Fetches a URL and returns the response body as text."""

    def fetch_text(self, url: str) -> str: ...


class HttpFetcher:
    """requests-based fetcher bounded by a short timeout."""

    def __init__(self, timeout: float | None = None, session: requests.Session | None = None):
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": "livecheck"})
        return session

    def fetch_text(self, url: str) -> str:
        """
        Fetch ``url`` and return its body.

        Raises:
            TransportFailure: on timeout, connection error or non-success status
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransportFailure(f"Failed to fetch {url}: {e}") from e
        _log.debug("fetched", url=url, status=response.status_code, length=len(response.text))
        return response.text

    def close(self) -> None:
        self.session.close()
