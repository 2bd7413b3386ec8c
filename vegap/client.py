"""
Vegap Client

Explicit client object for the Vegap proxy / transform / pipeline API.
Callers construct it once and pass it to wherever it is needed; there is
no process-wide instance.

Usage:
    vegap = Vegap(api_key="...", company_id="...")

    customer = await vegap.proxy("stripe-customers", {"id": "cus_123"})
    created = await vegap.proxy("stripe-customers", {
        "method": "POST",
        "body": {"name": "John Doe"},
    })
    result = await vegap.transform({"mappingId": "...", "rawResponse": raw})
    job = await vegap.pipeline("invoice-processor", {"file": Path("inv.pdf")})

Guarantees:
- Exactly one HTTP request per call, no retries
- Configuration errors are raised before any I/O
- The API key is never logged
"""

import dataclasses
import logging
from typing import Any, Mapping, Optional, Type, Union

import httpx
from pydantic import BaseModel, ValidationError

from .config import VegapConfig
from .errors import VegapConfigError, VegapDecodeError
from .normalize import (
    prepare_pipeline_request,
    prepare_proxy_request,
    prepare_transform_request,
    resolve_pipeline_call,
    resolve_proxy_call,
    resolve_transform_call,
)
from .schemas import (
    PipelineOptions,
    PipelineResponse,
    ProxyOptions,
    ProxyResponse,
    TransformOptions,
    TransformResponse,
)
from .sender import decode_json, is_csv, send_request

logger = logging.getLogger(__name__)


def _build_result(model: Type[BaseModel], response_model: Optional[Any], payload: Any):
    """Validate a payload into a result model, parametrized when asked."""
    if response_model is not None:
        model = model[response_model]  # type: ignore[index]
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise VegapDecodeError(
            f"Response did not match {model.__name__}: {e.error_count()} validation error(s)"
        ) from e


class Vegap:
    """
    Vegap API client.

    Args:
        config: Connection settings. Keyword arguments override its fields.
        api_key: Credential sent as X-API-Key (required)
        base_url: Service address
        company_id: Tenant identifier, needed for slug-based calls
        timeout: Request timeout in seconds for clients created here
        http_client: Shared httpx.AsyncClient. Not closed by this client.

    Raises:
        VegapConfigError: API key missing
    """

    def __init__(
        self,
        config: Optional[VegapConfig] = None,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        company_id: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        overrides = {
            key: value
            for key, value in {
                "api_key": api_key,
                "base_url": base_url,
                "company_id": company_id,
                "timeout": timeout,
            }.items()
            if value is not None
        }

        if config is None:
            config = VegapConfig(**{"api_key": "", **overrides})
        elif overrides:
            config = dataclasses.replace(config, **overrides)

        if not config.api_key:
            raise VegapConfigError("API key is required")

        self._config = config
        self._company_id = config.company_id
        self._http_client = http_client
        self._owns_client = False

    # ── Configuration ─────────────────────────────────────────

    @property
    def config(self) -> VegapConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def company_id(self) -> Optional[str]:
        return self._company_id

    def set_company_id(self, company_id: str) -> None:
        """Set or replace the tenant identifier used by slug-based calls."""
        self._company_id = company_id

    # ── Lifecycle ─────────────────────────────────────────────

    async def __aenter__(self) -> "Vegap":
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._config.timeout)
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the shared httpx client if this object created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_client = False

    async def _send(self, prepared) -> httpx.Response:
        return await send_request(
            prepared,
            client=self._http_client,
            timeout=self._config.timeout,
        )

    # ── Operations ────────────────────────────────────────────

    async def proxy(
        self,
        identifier: Union[str, ProxyOptions, Mapping[str, Any]],
        options: Union[None, ProxyOptions, Mapping[str, Any]] = None,
        *,
        response_model: Optional[Any] = None,
    ) -> ProxyResponse:
        """
        Proxy a request through a mapping and return the transformed data.

        Args:
            identifier: Custom slug, or options carrying mapping_id
            options: Query params for a GET (plain mapping), or ProxyOptions
                / a mapping with method, body, query, path or headers
            response_model: Type to validate the returned data against

        Returns:
            ProxyResponse with the transformed data

        Raises:
            VegapConfigError: No slug or mapping_id, or missing company id
            VegapTransportError: Network failure
            VegapAPIError: Service rejected the request
            VegapDecodeError: Body is not JSON or does not fit response_model
        """
        call = resolve_proxy_call(identifier, options)
        prepared = prepare_proxy_request(
            call, self._config.base_url, self._config.api_key, self._company_id
        )
        logger.debug(
            f"Proxy call resolved to {call.target.kind} target",
            extra={"target_kind": call.target.kind, "method": prepared.method},
        )

        response = await self._send(prepared)
        return _build_result(ProxyResponse, response_model, {"data": decode_json(response)})

    async def transform(
        self,
        options: Union[TransformOptions, Mapping[str, Any]],
        *,
        response_model: Optional[Any] = None,
    ) -> TransformResponse:
        """
        Transform a raw API response with a stored mapping.

        Raises:
            VegapConfigError: mapping_id or raw_response missing
            VegapTransportError, VegapAPIError, VegapDecodeError
        """
        call = resolve_transform_call(options)
        prepared = prepare_transform_request(call, self._config.base_url, self._config.api_key)

        response = await self._send(prepared)
        return _build_result(TransformResponse, response_model, decode_json(response))

    async def pipeline(
        self,
        identifier: Union[str, PipelineOptions, Mapping[str, Any]],
        options: Union[None, PipelineOptions, Mapping[str, Any]] = None,
        *,
        response_model: Optional[Any] = None,
    ) -> PipelineResponse:
        """
        Run a processing pipeline on a file upload or JSON data.

        A text/csv response is returned verbatim as result, with an
        empty job_id and status "completed".

        Raises:
            VegapConfigError: No slug or pipeline_id, no file or data,
                unsupported file type, or missing company id
            VegapTransportError, VegapAPIError, VegapDecodeError
        """
        call = resolve_pipeline_call(identifier, options)
        prepared = prepare_pipeline_request(
            call, self._config.base_url, self._config.api_key, self._company_id
        )
        logger.debug(
            f"Pipeline call resolved to {call.target.kind} target",
            extra={
                "target_kind": call.target.kind,
                "upload": prepared.files is not None,
            },
        )

        response = await self._send(prepared)

        if is_csv(response):
            payload = {
                "success": True,
                "job_id": "",
                "result": response.text,
                "status": "completed",
            }
            return _build_result(PipelineResponse, response_model, payload)

        return _build_result(PipelineResponse, response_model, decode_json(response))


def create_instance(
    config: Optional[VegapConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Vegap:
    """Create a client from config, or from the environment when none is given."""
    return Vegap(config if config is not None else VegapConfig.from_env(), http_client=http_client)
