"""
Domain Fetchers

Read-only access to raw domain payloads. Each fetcher serves one domain and
returns the upstream integration's JSON as-is:

    code-review    {"pull_requests": [...], "issues": [...]}
    issue-tracker  {"assigned_issues": [...], "projects": [...]}
    messaging      {"messages": [...]}
    scheduling     {"events": [...]}
"""

import asyncio
import inspect
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import httpx

from .errors import FetchError
from .schemas import Domain

logger = logging.getLogger("briefing.common.fetchers")


class DomainFetcher(ABC):
    """Fetches the raw payload for one domain on behalf of a user."""

    def __init__(self, domain: Domain):
        self.domain = Domain(domain)

    @abstractmethod
    async def fetch(self, user_id: str) -> Dict[str, Any]:
        """
        Fetch the raw payload.

        Raises:
            FetchError: when the payload cannot be retrieved
        """
        pass

    async def close(self) -> None:
        pass


class StaticDomainFetcher(DomainFetcher):
    """Serves a fixed payload, or the result of a (sync or async) callable."""

    def __init__(
        self,
        domain: Domain,
        payload: Union[Dict[str, Any], Callable[[str], Any]],
    ):
        super().__init__(domain)
        self._payload = payload

    async def fetch(self, user_id: str) -> Dict[str, Any]:
        if callable(self._payload):
            result = self._payload(user_id)
            if inspect.isawaitable(result):
                result = await result
            return result
        return json.loads(json.dumps(self._payload, default=str))


class FileDomainFetcher(DomainFetcher):
    """Reads <directory>/<domain>.json, e.g. payloads/code-review.json"""

    def __init__(self, domain: Domain, directory: Path):
        super().__init__(domain)
        self._path = Path(directory) / f"{Domain(domain).value}.json"

    async def fetch(self, user_id: str) -> Dict[str, Any]:
        if not self._path.exists():
            raise FetchError(f"No payload file for {self.domain.value}: {self._path}")
        try:
            text = await asyncio.to_thread(self._path.read_text)
            return json.loads(text)
        except (json.JSONDecodeError, IOError) as e:
            raise FetchError(f"Failed to read {self._path}: {e}") from e


class HttpDomainFetcher(DomainFetcher):
    """GET {base_url}/{domain}?user_id=... against an integration gateway."""

    def __init__(
        self,
        domain: Domain,
        base_url: str,
        token: str = "",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(domain)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout), headers=headers)
        if client is not None:
            client.headers.update(headers)

    async def fetch(self, user_id: str) -> Dict[str, Any]:
        url = f"{self.base_url}/{self.domain.value}"
        try:
            response = await self._client.get(url, params={"user_id": user_id})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"{self.domain.value} fetch failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"{self.domain.value} fetch failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"{self.domain.value} returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise FetchError(f"{self.domain.value} returned {type(data).__name__}, expected object")
        return data

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def build_fetchers(fetcher_config) -> Dict[Domain, DomainFetcher]:
    """
    Build one fetcher per domain from FetcherConfig.

    HTTP gateway when base_url is set, JSON files when payload_dir is set,
    otherwise empty static payloads.
    """
    fetchers: Dict[Domain, DomainFetcher] = {}
    for domain in Domain:
        if fetcher_config.base_url:
            fetchers[domain] = HttpDomainFetcher(
                domain,
                base_url=fetcher_config.base_url,
                token=fetcher_config.token,
                timeout=fetcher_config.timeout,
            )
        elif fetcher_config.payload_dir:
            fetchers[domain] = FileDomainFetcher(domain, Path(fetcher_config.payload_dir).expanduser())
        else:
            fetchers[domain] = StaticDomainFetcher(domain, {})
    if not fetcher_config.base_url and not fetcher_config.payload_dir:
        logger.warning("No fetcher source configured, domains will report no data")
    return fetchers
