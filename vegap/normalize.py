"""
Vegap Call Normalization

PURE CONVERSION - NO I/O

Resolves the loosely shaped arguments of proxy / transform / pipeline
calls into one fully specified request:
- Target: slug (needs a tenant identifier) or opaque id
- Options: bare query map vs structured options, decided once per call
- URL, headers and body

Every failure here is a VegapConfigError raised before anything is sent.
"""

import io
import json
import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from urllib.parse import quote, urlencode

from pydantic import ValidationError

from .errors import VegapConfigError
from .schemas import (
    IdTarget,
    PipelineOptions,
    ProxyOptions,
    SlugTarget,
    Target,
    TransformOptions,
)


API_KEY_HEADER = "X-API-Key"
JSON_CONTENT_TYPE = "application/json"
DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"
DEFAULT_UPLOAD_NAME = "file"

# Keys that mark a mapping as structured ProxyOptions rather than query params
PROXY_OPTION_KEYS = frozenset(
    {"method", "body", "query", "path", "headers", "mappingId", "mapping_id"}
)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

PROXY_ROUTES = {
    "id": "/api/proxy/{id}",
    "slug": "/api/proxy/custom/{company_id}/{slug}",
}
PIPELINE_ROUTES = {
    "id": "/api/pipelines/execute/{id}",
    "slug": "/api/pipelines/custom/{company_id}/{slug}",
}
TRANSFORM_ROUTE = "/api/transform"

# RFC 3986 sub-delims plus ":" "@" "/" stay literal in extra path segments
_PATH_SAFE = "/:@!$&'()*+,;="


# ============================================================================
# RESOLVED CALLS
# ============================================================================

@dataclass(frozen=True)
class ProxyCall:
    target: Target
    options: ProxyOptions


@dataclass(frozen=True)
class TransformCall:
    mapping_id: str
    raw_response: Any


@dataclass(frozen=True)
class PipelineCall:
    target: Target
    options: PipelineOptions


@dataclass(frozen=True)
class PreparedRequest:
    """One outbound HTTP request, ready to hand to httpx."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    content: Optional[str] = None
    files: Optional[Dict[str, Tuple[str, Any, str]]] = None


# ============================================================================
# OPTION RESOLUTION
# ============================================================================

def _validate(model, value, label: str):
    if isinstance(value, model):
        return value
    if not isinstance(value, Mapping):
        raise VegapConfigError(
            f"{label} options must be a mapping or {model.__name__}, "
            f"got {type(value).__name__}"
        )
    try:
        return model.model_validate(dict(value))
    except ValidationError as e:
        raise VegapConfigError(f"Invalid {label} options: {e}") from e


def coerce_proxy_options(options: Union[None, ProxyOptions, Mapping[str, Any]]) -> ProxyOptions:
    """
    Decide what the options argument of a slug call means.

    - None → plain GET
    - ProxyOptions → used as is
    - mapping with any key in PROXY_OPTION_KEYS → structured options
    - any other mapping → query parameters of a GET

    The decision is made on the key set as a whole, never per field.
    """
    if options is None:
        return ProxyOptions()

    if isinstance(options, Mapping) and PROXY_OPTION_KEYS.isdisjoint(options.keys()):
        try:
            return ProxyOptions(query=dict(options), method="GET")
        except ValidationError as e:
            raise VegapConfigError(f"Invalid query parameters: {e}") from e

    return _validate(ProxyOptions, options, "proxy")


def resolve_proxy_call(
    identifier: Union[str, ProxyOptions, Mapping[str, Any]],
    options: Union[None, ProxyOptions, Mapping[str, Any]] = None,
) -> ProxyCall:
    """
    Resolve proxy(identifier, options) into a target and structured options.

    identifier is either a slug or an options object carrying mapping_id.
    An explicit mapping_id wins over a slug.

    Raises:
        VegapConfigError: No usable target or malformed options
    """
    slug: Optional[str] = None

    if isinstance(identifier, str):
        slug = identifier
        resolved = coerce_proxy_options(options)
    elif isinstance(identifier, (ProxyOptions, Mapping)):
        resolved = _validate(ProxyOptions, identifier, "proxy")
        if not resolved.mapping_id:
            raise VegapConfigError(
                "If the first argument is an options object, it must contain mapping_id"
            )
    else:
        raise VegapConfigError(
            f"Proxy identifier must be a slug or options object, got {type(identifier).__name__}"
        )

    if resolved.mapping_id:
        target: Target = IdTarget(resolved.mapping_id)
    elif slug:
        target = SlugTarget(slug)
    else:
        raise VegapConfigError("Either a slug or mapping_id must be provided")

    return ProxyCall(target=target, options=resolved)


def resolve_transform_call(
    options: Union[TransformOptions, Mapping[str, Any]],
) -> TransformCall:
    """Validate transform options. Both mapping_id and raw_response are required."""
    resolved = _validate(TransformOptions, options, "transform")

    if not resolved.mapping_id:
        raise VegapConfigError("mapping_id is required")

    if resolved.raw_response is None or resolved.raw_response == "":
        raise VegapConfigError("raw_response is required")

    return TransformCall(mapping_id=resolved.mapping_id, raw_response=resolved.raw_response)


def resolve_pipeline_call(
    identifier: Union[str, PipelineOptions, Mapping[str, Any]],
    options: Union[None, PipelineOptions, Mapping[str, Any]] = None,
) -> PipelineCall:
    """
    Resolve pipeline(identifier, options) into a target and payload options.

    Raises:
        VegapConfigError: No target, or neither file nor data given
    """
    slug: Optional[str] = None

    if isinstance(identifier, str):
        slug = identifier
        resolved = _validate(PipelineOptions, options or {}, "pipeline")
    elif isinstance(identifier, (PipelineOptions, Mapping)):
        resolved = _validate(PipelineOptions, identifier, "pipeline")
        if not resolved.pipeline_id:
            raise VegapConfigError(
                "If the first argument is an options object, it must contain pipeline_id, "
                "or pass a slug as the first argument"
            )
    else:
        raise VegapConfigError(
            f"Pipeline identifier must be a slug or options object, got {type(identifier).__name__}"
        )

    if resolved.file is None and resolved.data is None:
        raise VegapConfigError("Either file or data must be provided")

    if resolved.pipeline_id:
        target: Target = IdTarget(resolved.pipeline_id)
    elif slug:
        target = SlugTarget(slug)
    else:
        raise VegapConfigError("Either a slug or pipeline_id must be provided")

    return PipelineCall(target=target, options=resolved)


# ============================================================================
# URL / HEADERS / BODY
# ============================================================================

def build_target_url(
    base_url: str,
    routes: Mapping[str, str],
    target: Target,
    company_id: Optional[str],
) -> str:
    """
    Build {base}{route} for a target.

    Slug targets are lowercased and need a company id; no lookup is
    attempted when it is missing.
    """
    if isinstance(target, IdTarget):
        return base_url + routes["id"].format(id=quote(target.id, safe=""))

    if not company_id:
        raise VegapConfigError(
            "Company ID is required. Provide it in the config or use set_company_id()."
        )

    return base_url + routes["slug"].format(
        company_id=quote(company_id, safe=""),
        slug=quote(target.slug.lower(), safe=""),
    )


def append_path(url: str, path: Optional[str]) -> str:
    """Append an extra path, dropping one leading "/" so no "//" appears."""
    if not path:
        return url
    if path.startswith("/"):
        path = path[1:]
    return f"{url}/{quote(path, safe=_PATH_SAFE)}"


def _render_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_query(query: Optional[Mapping[str, Any]]) -> str:
    """Form-encode query params. None values are dropped."""
    if not query:
        return ""
    pairs = [
        (str(key), _render_query_value(value))
        for key, value in query.items()
        if value is not None
    ]
    return urlencode(pairs)


def build_headers(
    api_key: str,
    overrides: Optional[Mapping[str, str]] = None,
    content_type: Optional[str] = JSON_CONTENT_TYPE,
) -> Dict[str, str]:
    """Credential and content-type defaults. Caller headers win."""
    headers = {API_KEY_HEADER: api_key}
    if content_type:
        headers["Content-Type"] = content_type
    for key, value in (overrides or {}).items():
        # Header names are case-insensitive; drop any default the caller replaces
        for existing in [name for name in headers if name.lower() == key.lower()]:
            del headers[existing]
        headers[key] = value
    return headers


def serialize_body(method: str, body: Any) -> Optional[str]:
    """JSON-encode a body for POST/PUT/PATCH. Strings pass through untouched."""
    if method not in BODY_METHODS or body is None or body == "":
        return None
    if isinstance(body, str):
        return body
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


# ============================================================================
# FILE PAYLOADS
# ============================================================================

def file_part(
    file: Any,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> Tuple[str, Any, str]:
    """
    Convert a file payload into an httpx multipart tuple.

    Supported: bytes, bytearray, memoryview, binary file objects (read())
    and filesystem paths. Strings are rejected since they are ambiguous
    between a path and the content itself.
    """
    if isinstance(file, (bytes, bytearray, memoryview)):
        content: Any = bytes(file)
        default_name = DEFAULT_UPLOAD_NAME
    elif isinstance(file, os.PathLike):
        path = Path(file)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise VegapConfigError(f"Cannot read file {path}: {e}") from e
        default_name = path.name
    elif hasattr(file, "read") and not isinstance(file, (str, io.TextIOBase)):
        content = file
        name = getattr(file, "name", None)
        default_name = os.path.basename(name) if isinstance(name, str) and name else DEFAULT_UPLOAD_NAME
    else:
        raise VegapConfigError(
            f"Unsupported file type {type(file).__name__}. "
            "Use bytes, a binary file object or a path."
        )

    name = filename or default_name
    mime = content_type or mimetypes.guess_type(name)[0] or DEFAULT_FILE_CONTENT_TYPE
    return name, content, mime


# ============================================================================
# REQUEST PREPARATION
# ============================================================================

def prepare_proxy_request(
    call: ProxyCall,
    base_url: str,
    api_key: str,
    company_id: Optional[str],
) -> PreparedRequest:
    opts = call.options
    url = append_path(build_target_url(base_url, PROXY_ROUTES, call.target, company_id), opts.path)

    query_string = encode_query(opts.query)
    if query_string:
        url = f"{url}?{query_string}"

    return PreparedRequest(
        method=opts.method,
        url=url,
        headers=build_headers(api_key, opts.headers),
        content=serialize_body(opts.method, opts.body),
    )


def prepare_transform_request(
    call: TransformCall,
    base_url: str,
    api_key: str,
) -> PreparedRequest:
    body = {"mapping_id": call.mapping_id, "raw_response": call.raw_response}
    return PreparedRequest(
        method="POST",
        url=base_url + TRANSFORM_ROUTE,
        headers=build_headers(api_key),
        content=serialize_body("POST", body),
    )


def prepare_pipeline_request(
    call: PipelineCall,
    base_url: str,
    api_key: str,
    company_id: Optional[str],
) -> PreparedRequest:
    """
    File uploads go out as multipart with no Content-Type default so
    httpx can set the boundary. JSON payloads are wrapped as {"data": ...}.
    """
    opts = call.options
    url = build_target_url(base_url, PIPELINE_ROUTES, call.target, company_id)

    if opts.file is not None:
        return PreparedRequest(
            method="POST",
            url=url,
            headers=build_headers(api_key, opts.headers, content_type=None),
            files={"file": file_part(opts.file, opts.filename, opts.content_type)},
        )

    return PreparedRequest(
        method="POST",
        url=url,
        headers=build_headers(api_key, opts.headers),
        content=serialize_body("POST", {"data": opts.data}),
    )
