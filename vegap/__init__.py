"""
Async Python client for the Vegap mapping API.

Three operations, each issuing exactly one HTTP request:
- proxy: call an upstream API through a stored mapping
- transform: apply a mapping to a raw API response
- pipeline: run a processing pipeline on a file or JSON data

Example usage:
    from vegap import Vegap

    async with Vegap(api_key="...", company_id="...") as vegap:
        result = await vegap.proxy("stripe-customers", {"id": "cus_123"})
        print(result.data)
"""

from .client import Vegap, create_instance
from .config import DEFAULT_BASE_URL, VegapConfig
from .errors import (
    VegapAPIError,
    VegapConfigError,
    VegapDecodeError,
    VegapError,
    VegapTransportError,
)
from .schemas import (
    IdTarget,
    PipelineOptions,
    PipelineResponse,
    ProxyOptions,
    ProxyResponse,
    ResponseMeta,
    SlugTarget,
    TransformOptions,
    TransformResponse,
)

__all__ = [
    # Client
    "Vegap",
    "create_instance",
    "VegapConfig",
    "DEFAULT_BASE_URL",
    # Errors
    "VegapError",
    "VegapConfigError",
    "VegapTransportError",
    "VegapAPIError",
    "VegapDecodeError",
    # Schemas
    "ProxyOptions",
    "TransformOptions",
    "PipelineOptions",
    "ProxyResponse",
    "TransformResponse",
    "PipelineResponse",
    "ResponseMeta",
    "SlugTarget",
    "IdTarget",
]

__version__ = "0.1.0"
