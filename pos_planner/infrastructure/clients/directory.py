"""Customer directory and product catalog HTTP client (read-only)"""

from typing import List

import httpx

from pos_planner.config import settings
from pos_planner.domain.exceptions import DirectoryServiceError
from pos_planner.domain.models import CustomerRecord, ProductRecord
from pos_planner.domain.money import to_cents


class DirectoryClient:
    """Client for the external customer directory / catalog service"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.directory_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def _search(self, path: str, term: str, limit: int) -> list:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(
                    f"{self.base_url}{path}",
                    params={"search_term": term, "limit": limit},
                )
                response.raise_for_status()
                data = response.json()
                return data if isinstance(data, list) else data.get("results", [])

            except httpx.TimeoutException as e:
                raise DirectoryServiceError(f"Directory timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DirectoryServiceError(f"Directory error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise DirectoryServiceError(f"Directory unreachable: {e}") from e
            except ValueError as e:
                raise DirectoryServiceError(f"Invalid directory response: {e}") from e

    async def search_customers(self, term: str = "", limit: int = 24) -> List[CustomerRecord]:
        """
        Search customers by name, phone, or email.

        Raises:
            DirectoryServiceError: On timeout, HTTP errors, or invalid response
        """
        rows = await self._search("/customers", term, limit)
        try:
            return [
                CustomerRecord(
                    customer_id=str(row["id"]),
                    name=row.get("full_name") or row["name"],
                    credit_limit=to_cents(row["credit_limit"]) if row.get("credit_limit") is not None else None,
                    phone=row.get("phone"),
                    email=row.get("email"),
                )
                for row in rows
            ]
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise DirectoryServiceError(f"Invalid customer data from directory: {e}") from e

    async def search_products(self, term: str = "", limit: int = 24) -> List[ProductRecord]:
        """
        Search the catalog by product name.

        Raises:
            DirectoryServiceError: On timeout, HTTP errors, or invalid response
        """
        rows = await self._search("/products", term, limit)
        try:
            return [
                ProductRecord(
                    product_id=str(row["id"]),
                    name=row["name"],
                    price=to_cents(row["price"]),
                )
                for row in rows
            ]
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise DirectoryServiceError(f"Invalid product data from catalog: {e}") from e
