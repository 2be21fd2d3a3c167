"""
Fulfillment provider client (Prodigi v4).

One client, two capabilities:
    QuoteProvider   - POST /quotes: unit costs and shipping per method
    ProductCatalog  - GET /products/{sku}: product details and valid attributes

Services depend on the protocols, not on ProdigiClient, so tests inject
fakes and the app wires the real client once.

Failure handling:
    - Every request has a bounded timeout (httpx).
    - Network errors, timeouts, 408, 429 and 5xx are retried with
      exponential backoff: base_delay * 2 ** (attempt - 1).
    - Any other 4xx is raised immediately.
    - Anything left over surfaces as UpstreamQuoteError / QuoteTimeoutError.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import httpx

from core.exceptions import QuoteTimeoutError, UpstreamQuoteError
from models.pricing import ProviderQuote, ProviderQuoteItem, QuoteRequestLine
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class QuoteProvider(Protocol):
    def create_quote(
        self,
        destination_country: str,
        lines: Sequence[QuoteRequestLine],
        shipping_method: Optional[str] = None,
    ) -> List[ProviderQuote]:
        ...


class ProductCatalog(Protocol):
    def get_product(self, sku: str) -> Optional[Dict[str, Any]]:
        ...


def _cost(data: Dict[str, Any]) -> Decimal:
    return Decimal(str(data["amount"]))


def parse_quotes(data: Dict[str, Any]) -> List[ProviderQuote]:
    """
    Parse a /quotes response body.

    Raises:
        UpstreamQuoteError: If the body does not have the expected shape
    """
    try:
        quotes = []
        for raw in data.get("quotes") or []:
            summary = raw["costSummary"]
            items = tuple(
                ProviderQuoteItem(
                    sku=str(item["sku"]),
                    copies=int(item.get("copies", 1)),
                    unit_cost=_cost(item["unitCost"]),
                    currency=str(item["unitCost"]["currency"]).upper(),
                    attributes={
                        str(k): str(v) for k, v in (item.get("attributes") or {}).items()
                    },
                )
                for item in raw.get("items") or []
            )
            shipments = raw.get("shipments") or []
            carrier = None
            if shipments and isinstance(shipments[0].get("carrier"), dict):
                carrier = shipments[0]["carrier"].get("name")
            quotes.append(ProviderQuote(
                shipment_method=str(raw["shipmentMethod"]),
                items_cost=_cost(summary["items"]),
                shipping_cost=_cost(summary["shipping"]),
                currency=str(summary["items"]["currency"]).upper(),
                items=items,
                carrier=carrier,
                shipping_currency=str(summary["shipping"]["currency"]).upper(),
            ))
        return quotes
    except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError) as e:
        raise UpstreamQuoteError(
            f"Malformed quote response from fulfillment provider: {e!r}",
            details={"outcome": data.get("outcome") if isinstance(data, dict) else None},
        ) from e


class ProdigiClient:
    """
    Synchronous Prodigi API client over a shared ``httpx.Client``.

    Thread-safe: httpx.Client may be used from several request threads.

    Attributes:
        base_url: API root, e.g. https://api.sandbox.prodigi.com/v4.0
        timeout_seconds: Per-request timeout
        max_retries: Retries after the first attempt
        retry_base_delay: First backoff delay in seconds
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the client.

        Args:
            api_key: Sent as the X-API-Key header
            base_url: API root URL
            timeout_seconds: Per-request timeout
            max_retries: Number of retries for retryable failures
            retry_base_delay: Backoff base in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
            sleep: Backoff sleep function
        """
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(0, int(max_retries))
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"X-API-Key": api_key, "Accept": "application/json"},
            transport=transport,
        )

    # -------------------------------------------------------------------------
    # Capabilities
    # -------------------------------------------------------------------------

    def create_quote(
        self,
        destination_country: str,
        lines: Sequence[QuoteRequestLine],
        shipping_method: Optional[str] = None,
    ) -> List[ProviderQuote]:
        """
        Request quotes for ``lines`` shipped to ``destination_country``.

        Without ``shipping_method`` the provider quotes every method it
        offers for the destination.

        Returns:
            One ProviderQuote per shipping method (possibly empty)
        """
        payload: Dict[str, Any] = {
            "destinationCountryCode": destination_country.upper(),
            "items": [
                {
                    "sku": line.sku,
                    "copies": line.copies,
                    "attributes": dict(line.attributes),
                    "assets": [{"printArea": "default"}],
                }
                for line in lines
            ],
        }
        if shipping_method:
            payload["shippingMethod"] = shipping_method

        logger.debug(
            f"Requesting quote: {len(lines)} item(s) to {payload['destinationCountryCode']}"
            f" method={shipping_method or 'all'}"
        )
        data = self._request("POST", "/quotes", json=payload)
        quotes = parse_quotes(data)
        logger.info(
            f"Quote received: outcome={data.get('outcome')} "
            f"methods={[q.shipment_method for q in quotes]}"
        )
        return quotes

    def get_product(self, sku: str) -> Optional[Dict[str, Any]]:
        """
        Fetch product details for a base SKU.

        Returns:
            The ``product`` object, or None if the SKU is unknown (404)
        """
        try:
            data = self._request("GET", f"/products/{sku}")
        except UpstreamQuoteError as e:
            if e.upstream_status == 404:
                logger.info(f"Product {sku} not found in catalog")
                return None
            raise
        return data.get("product") or data

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ProdigiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Transport with retries
    # -------------------------------------------------------------------------

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        attempts = self.max_retries + 1
        last_error: Optional[UpstreamQuoteError] = None
        timed_out = False

        for attempt in range(1, attempts + 1):
            timed_out = False
            try:
                response = self._client.request(method, path, json=json)
            except httpx.TimeoutException as e:
                timed_out = True
                last_error = UpstreamQuoteError(f"Fulfillment provider timed out: {e}", retryable=True)
            except httpx.TransportError as e:
                last_error = UpstreamQuoteError(f"Fulfillment provider unreachable: {e}", retryable=True)
            else:
                if response.status_code < 400:
                    return self._decode(response)
                last_error = self._error_from_response(response)
                if not last_error.retryable:
                    logger.error(f"{method} {path} rejected: {last_error}")
                    raise last_error

            if attempt < attempts:
                delay = self.retry_base_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"{method} {path} failed (attempt {attempt}/{attempts}): "
                    f"{last_error.message}; retrying in {delay:.2f}s"
                )
                self._sleep(delay)

        logger.error(f"{method} {path} failed after {attempts} attempt(s): {last_error.message}")
        if timed_out:
            raise QuoteTimeoutError(self.timeout_seconds, attempts)
        raise last_error

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamQuoteError(
                "Fulfillment provider returned invalid JSON",
                upstream_status=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise UpstreamQuoteError(
                "Fulfillment provider returned an unexpected body",
                upstream_status=response.status_code,
            )
        return data

    @staticmethod
    def _error_from_response(response: httpx.Response) -> UpstreamQuoteError:
        status = response.status_code
        retryable = status in RETRYABLE_STATUS_CODES or status >= 500
        details: Dict[str, Any] = {}
        message = f"Fulfillment provider returned HTTP {status}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            if body.get("outcome"):
                details["outcome"] = body["outcome"]
            if body.get("failures"):
                details["failures"] = body["failures"]
            text = body.get("statusText") or body.get("message")
            if text:
                message = f"{message}: {text}"

        # Non-retryable 4xx keep the upstream status
        status_code = 502 if retryable else status
        return UpstreamQuoteError(
            message,
            upstream_status=status,
            retryable=retryable,
            details=details,
            status_code=status_code,
        )
