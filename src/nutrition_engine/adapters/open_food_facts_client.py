"""Open Food Facts API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

_SEARCH_FIELDS = (
    "code,product_name,brands,generic_name,nutriments,image_url,"
    "categories_tags,last_updated_t"
)
# Nutella; a long-lived product used to probe the product endpoint.
_PROBE_BARCODE = "3017620422003"


class OpenFoodFactsClient(Protocol):
    """Interface for Open Food Facts API interactions."""

    async def search_products(
        self, query: str, page: int = 1, page_size: int = 20
    ) -> dict[str, object]:
        """Search products and return raw API data."""

    async def get_product(self, barcode: str) -> dict[str, object] | None:
        """Fetch a product by barcode, or None when it does not exist."""

    async def test_connection(self) -> bool:
        """Return True when the API is reachable."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15.0

    @classmethod
    def create(
        cls, base_url: str, user_agent: str, timeout_seconds: float = 15.0
    ) -> "HttpxOpenFoodFactsClient":
        """Create an Open Food Facts client with a managed httpx session."""
        return cls(
            base_url=base_url,
            user_agent=user_agent,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def search_products(
        self, query: str, page: int = 1, page_size: int = 20
    ) -> dict[str, object]:
        """Search products by name or brand."""
        response = await self.http_client.get(
            f"{self.base_url}/cgi/search.pl",
            params={
                "search_terms": query,
                "search_simple": 1,
                "action": "process",
                "json": 1,
                "page": page,
                "page_size": page_size,
                "fields": _SEARCH_FIELDS,
            },
            headers=self._headers(),
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def get_product(self, barcode: str) -> dict[str, object] | None:
        """Fetch a product by barcode, returning None when it is unknown."""
        response = await self.http_client.get(
            f"{self.base_url}/api/v0/product/{barcode}.json",
            headers=self._headers(),
            timeout=self.timeout_seconds,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        payload = response.json()
        if payload.get("status") == 0:
            return None
        product = payload.get("product")
        if not isinstance(product, dict):
            raise ValueError("Invalid response format from Open Food Facts")
        return product

    async def test_connection(self) -> bool:
        """Return True when the probe product can be fetched."""
        try:
            product = await self.get_product(_PROBE_BARCODE)
        except (httpx.HTTPError, ValueError):
            return False
        return product is not None

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "application/json"}
