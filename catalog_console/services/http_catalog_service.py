# catalog_console/services/http_catalog_service.py

"""Catalog service client speaking the storefront's REST API."""

import asyncio
import logging
from typing import Any

from curl_cffi import CurlError
from curl_cffi.requests import AsyncSession, Response

from catalog_console.config.settings import Settings
from catalog_console.services.catalog_service import CatalogService, Record
from catalog_console.services.errors import (
    CatalogServiceError,
    ConflictError,
    LimitExceededError,
    NotFoundError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger("catalog_console.http")


def _error_message(resp: Response) -> str:
    """Pull the ``message`` field out of an error body, if any."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {resp.status_code}"


def raise_for_status(resp: Response) -> None:
    """Translate an unsuccessful response into the error taxonomy."""
    status = resp.status_code
    if 200 <= status < 300:
        return
    message = _error_message(resp)
    if status == 400:
        raise ValidationError(message)
    if status == 404:
        raise NotFoundError(message)
    if status == 409:
        if "limit" in message.lower() or "too many" in message.lower():
            raise LimitExceededError(message)
        raise ConflictError(message)
    raise TransportError(f"HTTP {status}: {message}")


def _unwrap(data: Any, *keys: str) -> Record:
    """Pull the entity record out of a write response body."""
    if isinstance(data, dict):
        for key in keys:
            record = data.get(key)
            if isinstance(record, dict):
                return record
    raise TransportError(
        f"Malformed response: expected a JSON object with {' or '.join(keys)}"
    )


class HttpCatalogService(CatalogService):
    """REST client for the product / variant endpoints.

    Reads are retried with linear backoff on transport failures; writes
    are sent exactly once so a timed-out create is never duplicated.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
    ) -> None:
        self.settings = Settings()
        self.base_url = (
            base_url or self.settings.CATALOG_API_URL
        ).rstrip("/")
        self._token = (
            token if token is not None
            else self.settings.CATALOG_API_TOKEN
        )
        self._session: AsyncSession | None = None

    # ── Session plumbing ─────────────────────────────────

    def _get_session(self) -> AsyncSession:
        if self._session is None:
            self._session = AsyncSession(
                impersonate=self.settings.IMPERSONATE_BROWSER
            )
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _headers(self) -> dict[str, str]:
        headers = dict(self.settings.DEFAULT_HEADERS)
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Response:
        url = f"{self.base_url}{endpoint}"
        try:
            resp: Response = await self._get_session().request(
                method,
                url,
                params=params,
                json=body,
                headers=self._headers(),
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except CurlError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        logger.debug(
            "%s %s params=%s -> %d",
            method,
            endpoint,
            params,
            resp.status_code,
        )
        return resp

    async def _write(
        self,
        method: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        resp = await self._send(method, endpoint, params, body)
        raise_for_status(resp)
        try:
            return resp.json()
        except ValueError:
            return None

    async def _read(
        self,
        endpoint: str,
        params: dict[str, str],
    ) -> Any:
        """GET with retries; returns ``None`` on 404."""
        attempts = self.settings.MAX_RETRIES
        for attempt in range(1, attempts + 1):
            try:
                resp = await self._send("GET", endpoint, params)
                if resp.status_code == 404:
                    return None
                raise_for_status(resp)
                return resp.json()
            except (TransportError, ValueError) as exc:
                logger.warning(
                    "Read %s %s failed on attempt %d/%d: %s",
                    endpoint,
                    params,
                    attempt,
                    attempts,
                    exc,
                )
                if attempt == attempts:
                    if isinstance(exc, CatalogServiceError):
                        raise
                    raise TransportError(
                        f"Malformed response from {endpoint}"
                    ) from exc
                await asyncio.sleep(self.settings.RETRY_DELAY * attempt)
        return None

    # ── Products ─────────────────────────────────────────

    async def create_product(self, product: Record) -> Record:
        data = await self._write(
            "POST", self.settings.PRODUCT_ENDPOINT, body={"product": product}
        )
        return _unwrap(data, "item", "product")

    async def update_product(self, product_id: str, product: Record) -> Record:
        data = await self._write(
            "PUT",
            self.settings.PRODUCT_ENDPOINT,
            body={"productId": product_id, "product": product},
        )
        return _unwrap(data, "item", "product")

    async def delete_product(self, product_id: str) -> None:
        await self._write(
            "DELETE",
            self.settings.PRODUCT_ENDPOINT,
            params={"productId": product_id},
        )

    async def update_default_variant(
        self, product_id: str, variant_id: str,
    ) -> None:
        await self._write(
            "PUT",
            self.settings.DEFAULT_VARIANT_ENDPOINT,
            body={"productId": product_id, "defaultVariantId": variant_id},
        )

    async def get_product_by_id(self, product_id: str) -> Record | None:
        data: Record | None = await self._read(
            self.settings.PRODUCT_ENDPOINT, {"productId": product_id}
        )
        return data

    async def get_products_by_collection_id(
        self, collection_id: str,
    ) -> list[Record]:
        data = await self._read(
            self.settings.PRODUCT_ENDPOINT, {"collectionId": collection_id}
        )
        return list(data or [])

    # ── Variants ─────────────────────────────────────────

    async def create_variant(self, variant: Record) -> Record:
        data = await self._write(
            "POST", self.settings.VARIANT_ENDPOINT, body={"variant": variant}
        )
        return _unwrap(data, "variant")

    async def update_variant(self, variant_id: str, variant: Record) -> Record:
        data = await self._write(
            "PUT",
            self.settings.VARIANT_ENDPOINT,
            body={"variantId": variant_id, "variant": variant},
        )
        return _unwrap(data, "variant")

    async def delete_variant(self, variant_id: str) -> None:
        await self._write(
            "DELETE",
            self.settings.VARIANT_ENDPOINT,
            params={"variantId": variant_id},
        )

    async def get_variant_by_id(self, variant_id: str) -> Record | None:
        data: Record | None = await self._read(
            self.settings.VARIANT_ENDPOINT, {"variantId": variant_id}
        )
        return data

    async def get_variants_by_product_id(
        self, product_id: str,
    ) -> list[Record]:
        data = await self._read(
            self.settings.VARIANT_ENDPOINT, {"productId": product_id}
        )
        return list(data or [])
