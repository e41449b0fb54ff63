"""
Lightweight REST client for mercado API testing
One short-lived httpx client per request, shared process-wide timeout
"""

import logging
from typing import Dict, Any, Optional

import httpx

from mercado_e2e.config import E2EConfig, MARKET_ENDPOINT, get_config

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")


class RestClient:
    """Unauthenticated JSON REST client for the API under test"""

    def __init__(self, config: Optional[E2EConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or get_config()
        # Tests inject httpx.MockTransport here; None means real network
        self._transport = transport

    @property
    def timeout(self) -> float:
        return self.config.request_timeout

    def _client_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"timeout": self.config.request_timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return kwargs

    async def request(self, method: str, endpoint: str, data: Optional[Any] = None, params: Optional[Dict] = None) -> Dict[str, Any]:
        """Make REST request and return parsed body plus _status_code/_success"""
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported method: {method}")

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        url = f"{self.config.api_base_url}{endpoint}"

        logger.debug("%s %s", method, url)
        async with httpx.AsyncClient(**self._client_kwargs()) as client:
            if method == "GET":
                response = await client.get(url, headers=headers, params=params)
            elif method == "POST":
                response = await client.post(url, headers=headers, json=data)
            elif method == "PUT":
                response = await client.put(url, headers=headers, json=data)
            else:
                response = await client.delete(url, headers=headers)

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: httpx.Response) -> Dict[str, Any]:
        """Normalize any response body into a dict"""
        try:
            parsed_response = response.json()
        except ValueError:
            parsed_response = {"raw_response": response.text}

        # Handle both dict and list responses by wrapping in consistent format
        if isinstance(parsed_response, dict):
            result = parsed_response
        else:
            result = {"data": parsed_response}

        result["_status_code"] = response.status_code
        result["_success"] = response.status_code < 400
        return result

    def probe(self) -> bool:
        """Check that the market collection answers at all (any status below 500)"""
        url = f"{self.config.api_base_url}{MARKET_ENDPOINT}"
        kwargs: Dict[str, Any] = {"timeout": self.config.request_timeout}
        if isinstance(self._transport, httpx.BaseTransport):
            kwargs["transport"] = self._transport

        try:
            with httpx.Client(**kwargs) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Mercado API unreachable at %s: %s", url, e)
            return False

        logger.info("Mercado API probe %s -> %s", url, response.status_code)
        return response.status_code < 500
