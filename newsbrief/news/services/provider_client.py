from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog

from ...exceptions import ProviderError
from ...utils.string_utils import truncate_text

logger = structlog.get_logger(__name__)

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 5
MAX_ERROR_TEXT_LENGTH = 300


def clamp_page_size(value: Any) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        size = DEFAULT_PAGE_SIZE
    if size <= 0:
        size = DEFAULT_PAGE_SIZE
    return min(max(size, MIN_PAGE_SIZE), MAX_PAGE_SIZE)


class NewsProviderClient:
    """
    Transport for the two NewsAPI query shapes.

    Returns the raw `articles` list of the response; normalization happens in
    the fetcher.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://newsapi.org/v2",
        timeout_seconds: float = 10.0,
        language: str = "en",
        recency_days: int = 3,
    ):
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.language = language
        self.recency_days = recency_days

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def search_everything(self, terms: Sequence[str], page_size: int) -> List[Dict[str, Any]]:
        """Free-text search over the recency window, newest first."""
        since = (datetime.now(timezone.utc) - timedelta(days=self.recency_days)).date().isoformat()
        params = {
            "q": " ".join(term for term in terms if term),
            "language": self.language,
            "sortBy": "publishedAt",
            "pageSize": str(clamp_page_size(page_size)),
            "from": since,
        }
        return await self._get("everything", params)

    async def top_headlines(
        self,
        category: Optional[str] = None,
        country: Optional[str] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        query: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Category/country headlines with an optional keyword bias."""
        params: Dict[str, str] = {}
        if category:
            params["category"] = category
        if country:
            params["country"] = str(country).lower()
        if query:
            params["q"] = query
        params["pageSize"] = str(clamp_page_size(page_size))
        return await self._get("top-headlines", params)

    async def _get(self, endpoint: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{endpoint}"
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            raise ProviderError(f"NewsAPI request to {endpoint} timed out")
        except httpx.HTTPStatusError as e:
            body = truncate_text(e.response.text or "", MAX_ERROR_TEXT_LENGTH)
            raise ProviderError(f"NewsAPI error: {e.response.status_code} {body}", status_code=e.response.status_code)
        except httpx.HTTPError as e:
            raise ProviderError(f"NewsAPI request to {endpoint} failed: {e}")
        except ValueError:
            raise ProviderError(f"NewsAPI returned invalid JSON for {endpoint}")

        if not isinstance(data, dict):
            raise ProviderError(f"NewsAPI returned an unexpected payload for {endpoint}")
        if data.get("status") == "error":
            raise ProviderError(f"NewsAPI error: {data.get('code')} {data.get('message')}")

        articles = data.get("articles")
        logger.debug(
            "provider_request_completed",
            endpoint=endpoint,
            article_count=len(articles) if isinstance(articles, list) else 0,
        )
        return articles if isinstance(articles, list) else []
