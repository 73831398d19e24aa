"""Web search tool backed by the Exa search API."""

import logging
import os
from typing import List, Optional
import requests
from pydantic import BaseModel, Field

from .base import Tool

logger = logging.getLogger(__name__)


class WebSearchInput(BaseModel):
    query: str = Field(..., min_length=1, description="Search query for recent web content")


class WebSearchTool(Tool):
    """Tool for searching the web for current information."""

    name = "webSearch"
    description = """Search the web for up-to-date information.
Use this for recent trends, platform changes, competitor examples or any fact
that may have changed after your training data. Returns titles, URLs and
short excerpts."""
    input_model = WebSearchInput

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.exa.ai",
        num_results: int = 5,
        timeout: int = 10
    ):
        """
        Initialize search tool.

        Args:
            api_key: Exa API key (falls back to EXA_API_KEY env var)
            base_url: Base URL of the search API
            num_results: Number of results to return
            timeout: Request timeout in seconds (default: 10)
        """
        self.api_key = api_key or os.environ.get("EXA_API_KEY")
        self.base_url = base_url.rstrip('/')
        self.num_results = num_results
        self.timeout = timeout

    def _get_headers(self) -> dict:
        """Build request headers."""
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "x-api-key": self.api_key or "",
        }

    def execute(self, args: WebSearchInput) -> List[dict]:
        """Search the web."""
        if not self.api_key:
            raise RuntimeError("Web search is not configured (missing EXA_API_KEY)")

        try:
            response = requests.post(
                f"{self.base_url}/search",
                json={
                    "query": args.query,
                    "numResults": self.num_results,
                    "contents": {"text": {"maxCharacters": 1000}},
                },
                headers=self._get_headers(),
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            raise RuntimeError(f"Web search timed out after {self.timeout}s")
        except requests.exceptions.ConnectionError as e:
            raise RuntimeError(f"Web search unavailable: {e}")

        if response.status_code in (401, 403):
            raise RuntimeError(f"Web search authentication failed: {response.status_code}")
        if response.status_code != 200:
            raise RuntimeError(f"Web search returned status {response.status_code}")

        results = response.json().get("results", [])
        logger.info(f"Web search for '{args.query}' returned {len(results)} results")

        return [
            {
                "title": item.get("title"),
                "url": item.get("url"),
                "content": (item.get("text") or "")[:1000],
                "published_date": item.get("publishedDate"),
            }
            for item in results[:self.num_results]
        ]
