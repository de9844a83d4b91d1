"""
HttpTaxConfigurationStore -- TaxConfigurationStore backed by the REST API.

Endpoints (relative to ``base_url``):
    GET    /organizations/{org}/tax-configurations
    GET    /organizations/{org}/tax-configurations/{id}
    POST   /organizations/{org}/tax-configurations
    PATCH  /organizations/{org}/tax-configurations/{id}
    DELETE /organizations/{org}/tax-configurations/{id}

Status mapping:
    400         -> ValidationError (``errors`` joined, else ``message``)
    404         -> ConfigurationNotFoundError
    409         -> DefaultConfigurationConflictError
    5xx         -> StoreUnavailableError
    non-list body on list -> StoreUnavailableError
    timeout     -> StoreTimeoutError
    transport   -> StoreUnavailableError

Tax rates may arrive as JSON strings ("5.00"); they are parsed into Decimal
by ``TaxConfiguration.from_dict`` and never go through float.
"""

from __future__ import annotations

from typing import Any, NoReturn

import httpx

from order_tax_config.schema import EngineSettings
from order_tax_kernel.domain.values import (
    TaxConfiguration,
    TaxConfigurationDraft,
    TaxConfigurationPatch,
)
from order_tax_kernel.exceptions import (
    ConfigurationNotFoundError,
    DefaultConfigurationConflictError,
    StoreTimeoutError,
    StoreUnavailableError,
    ValidationError,
)
from order_tax_kernel.logging_config import get_logger
from order_tax_services.store import TaxConfigurationStore

logger = get_logger("services.http_store")

DEFAULT_TIMEOUT_SECONDS = 10.0


class HttpTaxConfigurationStore(TaxConfigurationStore):
    """
    Remote store on an ``httpx.AsyncClient``.

    Pass ``client`` to share a connection pool or to inject a
    ``httpx.MockTransport`` in tests; otherwise the store owns its client
    and closes it in ``aclose()``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(
        cls, settings: EngineSettings, client: httpx.AsyncClient | None = None
    ) -> HttpTaxConfigurationStore:
        """Store for ``settings.store_base_url`` with ``settings.store_timeout_seconds``."""
        if not settings.store_base_url:
            raise ValueError("store_base_url is not configured")
        return cls(settings.store_base_url, timeout=settings.store_timeout_seconds, client=client)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> HttpTaxConfigurationStore:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _url(self, organization_id: str, configuration_id: str | None = None) -> str:
        url = f"{self.base_url}/organizations/{organization_id}/tax-configurations"
        if configuration_id is not None:
            url = f"{url}/{configuration_id}"
        return url

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        *,
        organization_id: str,
        configuration_id: str | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.client.request(method, url, json=json, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            logger.warning("tax_configuration_store_timeout", extra={
                "operation": operation,
                "timeout_seconds": self.timeout,
            })
            raise StoreTimeoutError(operation, self.timeout) from exc
        except httpx.TransportError as exc:
            logger.warning("tax_configuration_store_unreachable", extra={
                "operation": operation,
                "error": str(exc),
            })
            raise StoreUnavailableError(operation, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            self._raise_for_status(operation, response, organization_id, configuration_id, json)
        return response

    def _raise_for_status(
        self,
        operation: str,
        response: httpx.Response,
        organization_id: str,
        configuration_id: str | None,
        sent: dict[str, Any] | None,
    ) -> NoReturn:
        body = _json_or_empty(response)
        status = response.status_code
        logger.warning("tax_configuration_store_error", extra={
            "operation": operation,
            "status_code": status,
        })

        if status == 400:
            errors = body.get("errors") or []
            reason = ", ".join(str(e) for e in errors) if errors else (
                body.get("message") or "Invalid tax configuration data"
            )
            raise ValidationError(body.get("field") or "configuration", reason)
        if status == 404:
            raise ConfigurationNotFoundError(organization_id, configuration_id or "")
        if status == 409:
            raise DefaultConfigurationConflictError(
                organization_id,
                body.get("serviceType") or (sent or {}).get("serviceType") or "UNKNOWN",
                body.get("existingId") or "",
            )
        if status >= 500:
            raise StoreUnavailableError(operation, f"HTTP {status}")
        # Other 4xx: the request itself was wrong
        raise ValidationError("request", body.get("message") or f"HTTP {status}")

    async def list_configurations(self, organization_id: str) -> list[TaxConfiguration]:
        response = await self._request(
            "list_configurations", "GET", self._url(organization_id),
            organization_id=organization_id,
        )
        payload = _json_or_none(response)
        if not isinstance(payload, list):
            logger.warning("tax_configuration_store_bad_payload", extra={
                "operation": "list_configurations",
                "payload_type": type(payload).__name__,
            })
            raise StoreUnavailableError("list_configurations", "unexpected payload")
        return [TaxConfiguration.from_dict(item) for item in payload]

    async def get_configuration(
        self, organization_id: str, configuration_id: str
    ) -> TaxConfiguration:
        response = await self._request(
            "get_configuration", "GET", self._url(organization_id, configuration_id),
            organization_id=organization_id, configuration_id=configuration_id,
        )
        return TaxConfiguration.from_dict(response.json())

    async def create_configuration(
        self, organization_id: str, draft: TaxConfigurationDraft
    ) -> TaxConfiguration:
        response = await self._request(
            "create_configuration", "POST", self._url(organization_id),
            organization_id=organization_id, json=draft.to_dict(),
        )
        return TaxConfiguration.from_dict(response.json())

    async def update_configuration(
        self,
        organization_id: str,
        configuration_id: str,
        patch: TaxConfigurationPatch,
    ) -> TaxConfiguration:
        response = await self._request(
            "update_configuration", "PATCH", self._url(organization_id, configuration_id),
            organization_id=organization_id, configuration_id=configuration_id,
            json=patch.to_dict(),
        )
        return TaxConfiguration.from_dict(response.json())

    async def delete_configuration(self, organization_id: str, configuration_id: str) -> None:
        await self._request(
            "delete_configuration", "DELETE", self._url(organization_id, configuration_id),
            organization_id=organization_id, configuration_id=configuration_id,
        )


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    body = _json_or_none(response)
    return body if isinstance(body, dict) else {}
