"""
Sumble API Client

Thin authenticated wrapper around the Sumble REST API. Every call returns the
parsed JSON body unchanged; failures surface as SumbleRequestError.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class SumbleRequestError(Exception):
    """Generic failure talking to the Sumble API (network, timeout, bad body)."""


class SumbleAPIError(SumbleRequestError):
    """The Sumble API answered with a non-2xx status."""

    def __init__(self, status_code: int, text: str):
        self.status_code = status_code
        self.text = text
        super().__init__(f"Sumble API error ({status_code}): {text}")


class SumbleClient:
    """Client for the Sumble data API."""

    def __init__(self, api_key: str, base_url: str = "https://api.sumble.com", timeout: float = 30.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def request(self, endpoint: str, method: str = "GET", body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Perform an authenticated request and return the parsed JSON body.

        Args:
            endpoint: Path below the base URL (e.g. "/v3/jobs/find")
            method: HTTP method
            body: Optional JSON body

        Returns:
            Parsed JSON response

        Raises:
            SumbleAPIError: If the API returns a non-2xx status
            SumbleRequestError: On network failure, timeout or a non-JSON body
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.info(f"Sumble API request: {method} {url}")
        if body is not None:
            logger.debug(f"Request body: {json.dumps(body)}")

        try:
            response = requests.request(
                method,
                url,
                headers=self.headers,
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise SumbleRequestError(f"Sumble API request timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise SumbleRequestError(f"Sumble API request failed: {e}") from e

        if not response.ok:
            raise SumbleAPIError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise SumbleRequestError(f"Sumble API returned a non-JSON body: {e}") from e

    async def arequest(self, endpoint: str, method: str = "GET", body: Optional[Dict[str, Any]] = None) -> Any:
        """Run request() in the default executor so the event loop stays free."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.request, endpoint, method, body)

