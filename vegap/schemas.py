"""
Vegap Client - Schemas

PURE DATA MODELS - NO I/O
Call options accepted from callers and the result shapes returned to them.
Options accept both snake_case names and the service's camelCase names.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


T = TypeVar("T")

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
QueryValue = Union[str, int, float, bool, None]


# ============================================================================
# TARGETS (WHICH MAPPING / PIPELINE A CALL ADDRESSES)
# ============================================================================

@dataclass(frozen=True)
class SlugTarget:
    """Human-readable slug. Needs a tenant identifier to route."""

    slug: str
    kind: Literal["slug"] = "slug"


@dataclass(frozen=True)
class IdTarget:
    """Backend-assigned id. Routes without a tenant identifier."""

    id: str
    kind: Literal["id"] = "id"


Target = Union[SlugTarget, IdTarget]


# ============================================================================
# CALL OPTIONS (INPUT)
# ============================================================================

class ProxyOptions(BaseModel):
    """Structured options for a proxied request."""

    model_config = ConfigDict(populate_by_name=True)

    query: Dict[str, QueryValue] = Field(default_factory=dict)
    body: Optional[Union[Dict[str, Any], List[Any], str]] = None
    method: HttpMethod = "GET"
    path: Optional[str] = Field(
        None,
        description="Extra path appended to the proxy route, e.g. 'cus_123/subscriptions'",
    )
    headers: Dict[str, str] = Field(default_factory=dict)
    mapping_id: Optional[str] = Field(None, alias="mappingId")

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value):
        if isinstance(value, str):
            return value.upper()
        return value


class TransformOptions(BaseModel):
    """A raw API response and the mapping to apply to it."""

    model_config = ConfigDict(populate_by_name=True)

    mapping_id: Optional[str] = Field(None, alias="mappingId")
    raw_response: Optional[Union[Dict[str, Any], List[Any], str]] = Field(
        None, alias="rawResponse"
    )


class PipelineOptions(BaseModel):
    """
    Payload for a pipeline run: either a file upload or JSON data.

    file accepts bytes, bytearray, memoryview, a binary file object or a
    filesystem path. filename and content_type describe the upload part.
    """

    model_config = ConfigDict(populate_by_name=True)

    file: Optional[Any] = None
    filename: Optional[str] = None
    content_type: Optional[str] = Field(None, alias="contentType")
    data: Optional[Any] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    pipeline_id: Optional[str] = Field(None, alias="pipelineId")


# ============================================================================
# RESULTS (OUTPUT)
# ============================================================================

class ResponseMeta(BaseModel):
    """Execution metadata reported by the service."""

    model_config = ConfigDict(extra="allow")

    mapping_id: Optional[str] = None
    mapping_name: Optional[str] = None
    execution_time_ms: Optional[float] = None
    tokens_used: Optional[int] = None
    ai_cost_usd: Optional[float] = None


class ProxyResponse(BaseModel, Generic[T]):
    """Transformed data returned by the proxy route."""

    data: T
    meta: Optional[ResponseMeta] = None


class TransformResponse(BaseModel, Generic[T]):
    """Result of applying a mapping to a raw response."""

    model_config = ConfigDict(extra="allow")

    # Only 2xx bodies are decoded; a missing flag means the call succeeded
    success: bool = True
    output: Optional[T] = None
    errors: Optional[List[str]] = None
    execution_time_ms: Optional[float] = None
    tokens_used: Optional[int] = None
    ai_cost_usd: Optional[float] = None
    meta: Optional[ResponseMeta] = None


class PipelineResponse(BaseModel, Generic[T]):
    """
    Result of a pipeline run.

    result is the raw CSV text when the pipeline is configured for CSV
    output; job_id is then empty and status "completed".
    """

    model_config = ConfigDict(extra="allow")

    success: bool = True
    job_id: str = ""
    result: Optional[Union[T, str]] = None
    status: Optional[str] = None
    error: Optional[str] = None
