import httpx
import structlog

from shared.config.settings import FRAUD_CHECK_TIMEOUT, FRAUD_CHECK_URL

logger = structlog.get_logger(__name__)


class FraudCheckClient:
    """Calls the courier-history fraud-check API for a phone number."""

    def __init__(self, url: str = FRAUD_CHECK_URL, timeout: float = FRAUD_CHECK_TIMEOUT, client: httpx.AsyncClient | None = None):
        self.url = url
        self.timeout = timeout
        self.client = client

    async def check(self, phone: str) -> dict | None:
        """Returns the decoded response body, or None on a non-2xx status or a non-JSON body."""
        if self.client is not None:
            resp = await self.client.post(self.url, json={"phone": phone}, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.url, json={"phone": phone})

        if resp.is_error:
            logger.warning("Fraud check returned an error status", status_code=resp.status_code)
            return None
        try:
            return resp.json()
        except ValueError:
            logger.error("Fraud check response is not JSON", status_code=resp.status_code)
            return None
