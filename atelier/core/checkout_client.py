import logging
import httpx
from typing import Optional

from atelier.core.config import settings
from atelier.schemas.cart import CheckoutHandoff

logger = logging.getLogger(__name__)


class CheckoutError(Exception):
    pass


class CheckoutClient:
    """Hands the cart over to the external checkout provider."""

    def __init__(self, base_url: str = None, api_key: str = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url if base_url is not None else settings.CHECKOUT_API_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.CHECKOUT_API_KEY
        self.transport = transport
        self.client = None

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=30.0, transport=self.transport)
        return self.client

    async def create_session(self, handoff: CheckoutHandoff) -> str:
        """Returns the provider URL the customer must be redirected to."""
        try:
            client = await self._get_client()
            logger.info(f"Creating checkout session: {handoff.item_count} items, total {handoff.total} {handoff.currency}")
            response = await client.post(
                f"{self.base_url}/sessions",
                headers={"X-API-KEY": self.api_key},
                json=handoff.model_dump(mode="json"),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Checkout session failed with status {e.response.status_code}: {str(e)}")
            raise CheckoutError(f"Checkout provider rejected the request: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Checkout provider unreachable: {str(e)}")
            raise CheckoutError("Checkout provider unreachable") from e

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Checkout provider returned invalid JSON: {str(e)}")
            raise CheckoutError("Checkout provider returned an invalid response") from e

        if not isinstance(data, dict):
            raise CheckoutError("Checkout provider returned an invalid response")

        redirect_url = data.get("redirectUrl") or data.get("redirect_url")
        if not redirect_url or not isinstance(redirect_url, str):
            raise CheckoutError("Checkout provider returned no redirect URL")
        return redirect_url

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None


checkout_client = CheckoutClient()
