"""
HTTP client for an external balance service.

Hosts that keep external account balances outside the print server can
point printpolicy at a small JSON endpoint:

    GET {base_url}/balances/{provider}/{username}
    200 {"balance": "12.50"}

Failures never propagate into the rules: ``get_balance`` returns None when
the service is unreachable or answers with something unusable, and the
balance check counts that as zero. ``fetch_balance`` raises instead, for
callers that want the reason.
"""

from decimal import Decimal, InvalidOperation
from urllib.parse import quote

import httpx

from printpolicy.errors import BalanceLookupError, BalanceResponseError
from printpolicy.logging_config import get_logger

logger = get_logger(__name__)


class HttpBalanceService:
    """
    Balance lookups over HTTP.

    Attributes:
        base_url: Service root, e.g. "https://balances.example.edu/api"
        timeout_seconds: Per-request timeout
        api_token: Optional bearer token
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        api_token: str | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.api_token = api_token

    def url_for(self, provider: str, username: str) -> str:
        return f"{self.base_url}/balances/{quote(provider, safe='')}/{quote(username, safe='')}"

    def fetch_balance(self, provider: str, username: str) -> Decimal:
        """
        Fetch a balance, raising on any failure.

        Raises:
            BalanceLookupError: If the request fails or times out
            BalanceResponseError: If the response isn't a usable balance
        """
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.get(self.url_for(provider, username), headers=headers)
        except httpx.TimeoutException as e:
            raise BalanceLookupError(
                message=f"Balance request timed out after {self.timeout_seconds} seconds",
                provider=provider,
                username=username,
            ) from e
        except httpx.RequestError as e:
            raise BalanceLookupError(
                message=f"Balance request failed: {e}",
                provider=provider,
                username=username,
            ) from e

        if response.status_code != 200:
            raise BalanceResponseError(
                provider=provider,
                username=username,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            return Decimal(str(payload["balance"]))
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            raise BalanceResponseError(
                provider=provider,
                username=username,
                status_code=response.status_code,
            ) from e

    def get_balance(self, provider: str, username: str) -> Decimal | None:
        """Fetch a balance, returning None on any failure."""
        try:
            return self.fetch_balance(provider, username)
        except BalanceLookupError as e:
            logger.warning("%s", e.message)
            return None
