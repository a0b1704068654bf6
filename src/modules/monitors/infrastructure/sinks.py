"""Notification sink adapters (httpx)."""

from __future__ import annotations

import httpx
from loguru import logger

from src.core.config import settings
from src.modules.monitors.domain.exceptions import (
    SinkDeliveryError,
    SinkNotConfiguredError,
)
from src.modules.monitors.domain.payload import ActivityPayload


class CloudflareKVSink:
    """Write activity documents into a Cloudflare Workers KV namespace.

    PUT {api}/accounts/{account}/storage/kv/namespaces/{namespace}/values/{key}
    仅 200 视为成功。
    """

    name = "cloudflare_kv"

    def __init__(
        self,
        account_id: str | None = None,
        namespace_id: str | None = None,
        api_token: str | None = None,
        api_base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.account_id = account_id
        self.namespace_id = namespace_id
        self.api_token = api_token
        self.api_base_url = (api_base_url or settings.CLOUDFLARE_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.NOTIFY_TIMEOUT_SEC
        self._transport = transport

    @classmethod
    def from_settings(cls) -> CloudflareKVSink:
        return cls(
            account_id=settings.CLOUDFLARE_ACCOUNT_ID,
            namespace_id=settings.CLOUDFLARE_KV_NAMESPACE_ID,
            api_token=settings.CLOUDFLARE_API_TOKEN,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_token and self.account_id and self.namespace_id)

    def value_url(self, key: str) -> str:
        return (
            f"{self.api_base_url}/accounts/{self.account_id}"
            f"/storage/kv/namespaces/{self.namespace_id}/values/{key}"
        )

    async def push(self, key: str, payload: ActivityPayload) -> None:
        if not self.configured:
            raise SinkNotConfiguredError(self.name)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.put(
                    self.value_url(key),
                    json=payload.to_wire(),
                    headers={"Authorization": f"Bearer {self.api_token}"},
                )
        except httpx.HTTPError as exc:
            raise SinkDeliveryError(self.name, f"executing request: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise SinkDeliveryError(self.name, f"unexpected status: {response.status_code}")
        logger.debug(f"Pushed activity to KV key '{key}'")


class HttpWebhookSender:
    """POST activity documents to a webhook URL; any status >= 400 fails."""

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout or settings.NOTIFY_TIMEOUT_SEC
        self._transport = transport

    async def send(self, url: str, payload: ActivityPayload) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload.to_wire())
        except httpx.HTTPError as exc:
            raise SinkDeliveryError("webhook", f"executing request: {exc}") from exc

        if response.status_code >= 400:
            raise SinkDeliveryError(
                "webhook", f"webhook returned status: {response.status_code}"
            )
