"""
HTTP client module for the upstream storefront APIs.

Provides async clients for the product catalog API and the store creation API.
Transport failures are translated into storefront exceptions, and every call is
logged with its duration and the correlation id of the request or form session
that triggered it.
"""

import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .config import settings
from .exceptions import (
    ServiceUnavailableException,
    StoreCreationException,
    UpstreamResponseException,
    UpstreamTimeoutException,
    ValidationException,
)
from .logging_config import get_logger, get_request_id
from .metrics import track_upstream_error, track_upstream_request
from .models import DomainCheckResult, Product, ProductEnvelope, StoreCreateRequest

logger = get_logger(__name__)


class BaseServiceClient:
    """
    Shared plumbing for the upstream API clients.

    Holds a persistent HTTP client with connection pooling, builds tracing
    headers and maps httpx errors onto storefront exceptions.

    Attributes:
        service_name: Name used in logs, metrics and exception messages
        base_url: Base URL of the upstream API
        timeout: Request timeout in seconds
        _client: Persistent httpx.AsyncClient with connection pooling
    """

    service_name = "upstream"

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            f"Initialized {type(self).__name__}: base_url={self.base_url}, "
            f"timeout={self.timeout}s"
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """
        Get or create the persistent HTTP client with connection pooling.

        Returns:
            Configured httpx.AsyncClient instance
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(
                    max_keepalive_connections=20,
                    max_connections=100,
                    keepalive_expiry=30.0,
                ),
                http2=True,
            )
            logger.debug("Created new HTTP client with connection pooling")
        return self._client

    async def close(self) -> None:
        """
        Close the HTTP client and release connections.

        Should be called during application shutdown.
        """
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
            logger.debug(f"Closed HTTP client for {self.service_name}")

    def _get_request_headers(self) -> Dict[str, str]:
        """
        Get common request headers including request ID for tracing.

        Returns:
            Dictionary of HTTP headers
        """
        headers = {
            "User-Agent": "ExpressIT-Storefront/1.0",
            "Accept": "application/json",
        }

        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        return headers

    async def _send(
        self,
        method: str,
        url: str,
        operation: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request, translating transport errors into storefront exceptions.

        Args:
            method: HTTP method
            url: Absolute request URL
            operation: Short operation name for logs and metrics
            **kwargs: Passed through to the httpx client

        Returns:
            The raw response, whatever its status code

        Raises:
            UpstreamTimeoutException: The request timed out
            ServiceUnavailableException: The upstream could not be reached
        """
        start_time = time.perf_counter()
        client = await self._get_client()

        try:
            if method == "GET":
                response = await client.get(
                    url, headers=self._get_request_headers(), **kwargs
                )
            else:
                response = await client.post(
                    url, headers=self._get_request_headers(), **kwargs
                )

        except (httpx.TimeoutException, TimeoutError) as error:
            duration_ms = (time.perf_counter() - start_time) * 1000
            track_upstream_error(self.service_name, "timeout")
            logger.error(
                "Upstream request timed out",
                extra={
                    "extra_fields": {
                        "service": self.service_name,
                        "operation": operation,
                        "url": url,
                        "timeout": self.timeout,
                        "duration_ms": duration_ms,
                        "error_type": type(error).__name__,
                    }
                },
            )
            raise UpstreamTimeoutException(
                self.service_name, self.timeout, details={"url": url}
            ) from error

        except httpx.ConnectError as error:
            track_upstream_error(self.service_name, "connection_error")
            logger.error(
                "Connection error to upstream service",
                extra={
                    "extra_fields": {
                        "service": self.service_name,
                        "operation": operation,
                        "url": url,
                        "error_message": str(error),
                    }
                },
            )
            raise ServiceUnavailableException(
                self.service_name,
                message=f"Cannot connect to {self.service_name}",
                details={"url": url},
            ) from error

        except httpx.RequestError as error:
            track_upstream_error(self.service_name, "request_error")
            logger.error(
                "Request error during upstream call",
                extra={
                    "extra_fields": {
                        "service": self.service_name,
                        "operation": operation,
                        "url": url,
                        "error_type": type(error).__name__,
                        "error_message": str(error),
                    }
                },
            )
            raise ServiceUnavailableException(
                self.service_name,
                message=f"Network error while calling {self.service_name}",
                details={"url": url, "error": str(error)},
            ) from error

        duration = time.perf_counter() - start_time
        track_upstream_request(
            self.service_name, operation, response.status_code, duration
        )
        logger.info(
            "Received response from upstream service",
            extra={
                "extra_fields": {
                    "service": self.service_name,
                    "operation": operation,
                    "status_code": response.status_code,
                    "duration_ms": duration * 1000,
                }
            },
        )
        return response

    def _decode(self, response: httpx.Response, operation: str) -> Any:
        """
        Check the status of a response and decode its JSON body.

        Raises:
            UpstreamResponseException: Error status or undecodable body
        """
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as error:
            status_code = error.response.status_code
            track_upstream_error(self.service_name, "http_error")
            logger.error(
                "HTTP error from upstream service",
                extra={
                    "extra_fields": {
                        "service": self.service_name,
                        "operation": operation,
                        "status_code": status_code,
                        "response_body": error.response.text[:500],
                    }
                },
            )
            raise UpstreamResponseException(
                self.service_name,
                f"status {status_code}",
                status_code=status_code,
            ) from error

        try:
            return response.json()
        except ValueError as error:
            track_upstream_error(self.service_name, "parse_error")
            logger.error(
                "Upstream response is not valid JSON",
                extra={
                    "extra_fields": {
                        "service": self.service_name,
                        "operation": operation,
                        "error_message": str(error),
                    }
                },
            )
            raise UpstreamResponseException(
                self.service_name, "body is not valid JSON"
            ) from error


class ProductCatalogClient(BaseServiceClient):
    """
    Client for the remote product catalog.

    The catalog only exposes the full collection, so single products are
    located client-side.
    """

    service_name = "product-catalog"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(base_url or settings.PRODUCT_SERVICE_URL, timeout)

    @property
    def products_url(self) -> str:
        return f"{self.base_url}/api/product"

    async def list_products(self) -> List[Product]:
        """
        Fetch the full product collection.

        Records that do not validate are skipped with a warning rather than
        failing the whole listing.

        Returns:
            Products in catalog order

        Raises:
            StorefrontException: The catalog could not be reached or answered
                with something other than a product envelope
        """
        response = await self._send("GET", self.products_url, "list_products")
        payload = self._decode(response, "list_products")

        try:
            envelope = ProductEnvelope.model_validate(payload)
        except ValidationError as error:
            track_upstream_error(self.service_name, "parse_error")
            logger.error(
                "Unexpected product catalog response",
                extra={"extra_fields": {"error_count": error.error_count()}},
            )
            raise UpstreamResponseException(
                self.service_name, "missing 'data' collection"
            ) from error

        products: List[Product] = []
        for index, record in enumerate(envelope.data):
            try:
                products.append(Product.model_validate(record))
            except ValidationError as error:
                logger.warning(
                    "Skipping malformed product record",
                    extra={
                        "extra_fields": {
                            "index": index,
                            "errors": error.errors(include_url=False),
                        }
                    },
                )

        logger.info(
            "Fetched product collection",
            extra={"extra_fields": {"product_count": len(products)}},
        )
        return products

    async def get_product(self, product_id: str) -> Optional[Product]:
        """
        Locate a single product by identifier.

        Args:
            product_id: Catalog identifier

        Returns:
            The product, or None when the catalog has no such item

        Raises:
            StorefrontException: The collection could not be fetched
        """
        for product in await self.list_products():
            if product.id == product_id:
                return product

        logger.info(
            "Product not found in catalog",
            extra={"extra_fields": {"product_id": product_id}},
        )
        return None

    async def health_check(self) -> bool:
        """
        Check whether the catalog answers at all.

        Returns:
            True if the product endpoint responds without a server error
        """
        try:
            client = await self._get_client()
            response = await client.get(
                self.products_url,
                headers=self._get_request_headers(),
                timeout=2.0,
            )
            is_healthy = response.status_code < 500

            if not is_healthy:
                logger.warning(
                    "Product catalog health check failed",
                    extra={
                        "extra_fields": {
                            "backend_url": self.base_url,
                            "status_code": response.status_code,
                        }
                    },
                )
            return is_healthy

        except Exception as error:
            logger.warning(
                "Product catalog health check failed with exception",
                extra={
                    "extra_fields": {
                        "backend_url": self.base_url,
                        "error_type": type(error).__name__,
                        "error_message": str(error),
                    }
                },
            )
            return False


class StoreServiceClient(BaseServiceClient):
    """Client for the store creation and domain availability API."""

    service_name = "store-service"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        domain_suffix: Optional[str] = None,
    ) -> None:
        super().__init__(base_url or settings.STORE_SERVICE_URL, timeout)
        self.domain_suffix = (
            settings.STORE_DOMAIN_SUFFIX if domain_suffix is None else domain_suffix
        )

    async def check_domain(self, domain: str) -> DomainCheckResult:
        """
        Ask whether a subdomain is still free.

        Args:
            domain: Proposed subdomain without the store suffix

        Returns:
            Parsed lookup result

        Raises:
            StorefrontException: Lookup failed or the answer could not be parsed
        """
        try:
            path = quote(domain + self.domain_suffix, safe="")
        except UnicodeEncodeError as error:
            logger.warning(
                "Domain cannot be encoded for lookup",
                extra={"extra_fields": {"domain": repr(domain)}},
            )
            raise ValidationException(
                "domain", domain, "contains characters that cannot be encoded"
            ) from error

        url = f"{self.base_url}/task/domains/check/{path}"
        response = await self._send("GET", url, "check_domain")
        payload = self._decode(response, "check_domain")

        try:
            result = DomainCheckResult.from_payload(domain, payload)
        except ValueError as error:
            track_upstream_error(self.service_name, "parse_error")
            logger.error(
                "Unexpected domain check response",
                extra={"extra_fields": {"domain": domain, "payload": str(payload)[:200]}},
            )
            raise UpstreamResponseException(self.service_name, str(error)) from error

        logger.info(
            "Domain check completed",
            extra={"extra_fields": {"domain": domain, "taken": result.taken}},
        )
        return result

    async def create_store(self, request: StoreCreateRequest) -> None:
        """
        Create a store.

        Args:
            request: Validated creation payload

        Raises:
            StoreCreationException: The API rejected the request; the message
                is the one from the response body or "Unknown error"
            StorefrontException: The API could not be reached
        """
        url = f"{self.base_url}/task/stores/create"
        response = await self._send(
            "POST", url, "create_store", json=request.model_dump()
        )

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning(
                "Store creation rejected",
                extra={
                    "extra_fields": {
                        "domain": request.domain,
                        "status_code": response.status_code,
                        "message": message,
                    }
                },
            )
            raise StoreCreationException(message, status_code=response.status_code)

        logger.info(
            "Store created",
            extra={"extra_fields": {"domain": request.domain, "name": request.name}},
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Unknown error"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return "Unknown error"


# Singleton instances for application-wide use
catalog_client = ProductCatalogClient()
store_client = StoreServiceClient()
