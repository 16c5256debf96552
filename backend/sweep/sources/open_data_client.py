"""
NYC Open Data Client

Fetches OATH hearing records from the Socrata API.

Query contract:
- $limit: page size cap
- $where: charge 1-3 description contains the violation category
- $order: hearing_date DESC
- X-App-Token header when a token is configured
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from sweep.exceptions import SourceFetchError

logger = logging.getLogger(__name__)

CHARGE_DESCRIPTION_FIELDS = (
    "charge_1_code_description",
    "charge_2_code_description",
    "charge_3_code_description",
)


def build_category_filter(category: str) -> str:
    """SoQL $where clause matching the category in any charge description."""
    safe = category.replace("'", "''").upper()
    return " OR ".join(f"{name} like '%{safe}%'" for name in CHARGE_DESCRIPTION_FIELDS)


class OpenDataClient:
    """
    Client for the OATH hearings dataset.

    The transport argument lets tests substitute httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str,
        app_token: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url
        self.app_token = app_token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.app_token:
            headers["X-App-Token"] = self.app_token
        return headers

    async def fetch_violations(
        self,
        limit: int,
        category: str,
        order: str = "hearing_date DESC"
    ) -> List[Dict[str, Any]]:
        """
        Fetch the current snapshot for a violation category.

        Raises:
            SourceFetchError: Network failure, non-2xx status or malformed body
        """
        params = {
            "$limit": str(limit),
            "$where": build_category_filter(category),
            "$order": order,
        }

        logger.info(f"Fetching {category} records from Open Data (limit={limit}, token={'yes' if self.app_token else 'no'})")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.base_url, params=params, headers=self._headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:500]
            logger.error(f"Open Data API error response: {body}")
            raise SourceFetchError(
                f"Open Data API returned {e.response.status_code}: {body}", cause=e
            ) from e
        except httpx.HTTPError as e:
            raise SourceFetchError(f"Failed to fetch Open Data: {e}", cause=e) from e
        except ValueError as e:
            raise SourceFetchError(f"Open Data response is not valid JSON: {e}", cause=e) from e

        if data is None:
            return []

        if not isinstance(data, list):
            raise SourceFetchError(f"Unexpected Open Data payload type: {type(data).__name__}")

        logger.info(f"Fetched {len(data)} {category} records from Open Data")
        return data
