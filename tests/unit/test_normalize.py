"""
tests/unit/test_normalize.py

Unit tests for call normalization (no I/O).

Verifies:
✔ Plain mapping without option keys becomes GET query params
✔ Any recognized option key makes the whole mapping structured options
✔ mapping_id wins over a slug
✔ Slug routes need a company id, id routes ignore it
✔ One leading "/" of an extra path is stripped
✔ Query encoding drops None and renders booleans as true/false
✔ Caller headers override the defaults, whatever their case
✔ Bodies are only serialized for POST / PUT / PATCH
✔ File payload kinds are converted or rejected (text-mode files included)
"""

import io
import json

import pytest

from vegap.errors import VegapConfigError
from vegap.normalize import (
    PIPELINE_ROUTES,
    PROXY_ROUTES,
    append_path,
    build_headers,
    build_target_url,
    coerce_proxy_options,
    encode_query,
    file_part,
    prepare_pipeline_request,
    prepare_proxy_request,
    prepare_transform_request,
    resolve_pipeline_call,
    resolve_proxy_call,
    resolve_transform_call,
    serialize_body,
)
from vegap.schemas import IdTarget, PipelineOptions, ProxyOptions, SlugTarget


BASE = "https://api.example.com"


# ─────────────────────────────────────────────────────
# Options heuristic
# ─────────────────────────────────────────────────────


class TestCoerceProxyOptions:
    def test_none_is_plain_get(self):
        opts = coerce_proxy_options(None)
        assert opts.method == "GET"
        assert opts.query == {}
        assert opts.body is None

    def test_plain_mapping_becomes_query(self):
        opts = coerce_proxy_options({"id": "cus_123", "limit": 10})
        assert opts.method == "GET"
        assert opts.query == {"id": "cus_123", "limit": 10}

    def test_method_key_makes_structured_options(self):
        opts = coerce_proxy_options({"method": "post", "body": {"name": "John"}})
        assert opts.method == "POST"
        assert opts.body == {"name": "John"}
        assert opts.query == {}

    def test_single_recognized_key_decides_for_whole_mapping(self):
        # "id" is not an option field; it is not turned into a query param
        opts = coerce_proxy_options({"path": "cus_123", "id": "ignored"})
        assert opts.path == "cus_123"
        assert opts.query == {}

    def test_camel_case_mapping_id_is_recognized(self):
        opts = coerce_proxy_options({"mappingId": "abc"})
        assert opts.mapping_id == "abc"

    def test_options_instance_used_as_is(self):
        given = ProxyOptions(method="DELETE")
        assert coerce_proxy_options(given) is given

    def test_invalid_method_is_config_error(self):
        with pytest.raises(VegapConfigError):
            coerce_proxy_options({"method": "TRACE"})

    def test_non_mapping_is_config_error(self):
        with pytest.raises(VegapConfigError):
            coerce_proxy_options(["id", "cus_123"])


# ─────────────────────────────────────────────────────
# Target resolution
# ─────────────────────────────────────────────────────


class TestResolveProxyCall:
    def test_slug_identifier(self):
        call = resolve_proxy_call("stripe-customers", {"id": "cus_123"})
        assert call.target == SlugTarget("stripe-customers")
        assert call.options.query == {"id": "cus_123"}

    def test_options_identifier_with_mapping_id(self):
        call = resolve_proxy_call({"mappingId": "507f1f77", "query": {"id": "x"}})
        assert call.target == IdTarget("507f1f77")
        assert call.options.query == {"id": "x"}

    def test_options_identifier_without_mapping_id_fails(self):
        with pytest.raises(VegapConfigError, match="mapping_id"):
            resolve_proxy_call({"query": {"id": "x"}})

    def test_mapping_id_wins_over_slug(self):
        call = resolve_proxy_call("stripe-customers", {"mapping_id": "507f1f77"})
        assert call.target == IdTarget("507f1f77")

    def test_empty_slug_fails(self):
        with pytest.raises(VegapConfigError, match="slug or mapping_id"):
            resolve_proxy_call("")

    def test_unsupported_identifier_type_fails(self):
        with pytest.raises(VegapConfigError):
            resolve_proxy_call(42)


class TestResolveTransformCall:
    def test_valid(self):
        call = resolve_transform_call({"mappingId": "m1", "rawResponse": {"id": 1}})
        assert call.mapping_id == "m1"
        assert call.raw_response == {"id": 1}

    def test_missing_mapping_id(self):
        with pytest.raises(VegapConfigError, match="mapping_id is required"):
            resolve_transform_call({"raw_response": {"id": 1}})

    def test_missing_raw_response(self):
        with pytest.raises(VegapConfigError, match="raw_response is required"):
            resolve_transform_call({"mapping_id": "m1"})

    def test_empty_string_raw_response(self):
        with pytest.raises(VegapConfigError, match="raw_response is required"):
            resolve_transform_call({"mapping_id": "m1", "raw_response": ""})

    def test_empty_object_raw_response_is_allowed(self):
        call = resolve_transform_call({"mapping_id": "m1", "raw_response": {}})
        assert call.raw_response == {}


class TestResolvePipelineCall:
    def test_slug_with_data(self):
        call = resolve_pipeline_call("invoice-processor", {"data": {"amount": 1000}})
        assert call.target == SlugTarget("invoice-processor")
        assert call.options.data == {"amount": 1000}

    def test_options_with_pipeline_id(self):
        call = resolve_pipeline_call(PipelineOptions(pipeline_id="691b", file=b"x"))
        assert call.target == IdTarget("691b")

    def test_options_without_pipeline_id_fails(self):
        with pytest.raises(VegapConfigError, match="pipeline_id"):
            resolve_pipeline_call({"data": {"a": 1}})

    def test_neither_file_nor_data_fails(self):
        with pytest.raises(VegapConfigError, match="Either file or data"):
            resolve_pipeline_call("invoice-processor")

    def test_pipeline_id_wins_over_slug(self):
        call = resolve_pipeline_call("invoice-processor", {"pipelineId": "691b", "data": [1]})
        assert call.target == IdTarget("691b")


# ─────────────────────────────────────────────────────
# URL building
# ─────────────────────────────────────────────────────


class TestBuildTargetUrl:
    def test_slug_route_lowercases_slug(self):
        url = build_target_url(BASE, PROXY_ROUTES, SlugTarget("Stripe-Customers"), "acme")
        assert url == f"{BASE}/api/proxy/custom/acme/stripe-customers"

    def test_slug_route_without_company_fails(self):
        with pytest.raises(VegapConfigError, match="Company ID is required"):
            build_target_url(BASE, PROXY_ROUTES, SlugTarget("stripe-customers"), None)

    def test_id_route_ignores_company(self):
        url = build_target_url(BASE, PROXY_ROUTES, IdTarget("507f1f77"), "acme")
        assert url == f"{BASE}/api/proxy/507f1f77"

    def test_pipeline_routes(self):
        assert (
            build_target_url(BASE, PIPELINE_ROUTES, IdTarget("691b"), None)
            == f"{BASE}/api/pipelines/execute/691b"
        )
        assert (
            build_target_url(BASE, PIPELINE_ROUTES, SlugTarget("Invoices"), "acme")
            == f"{BASE}/api/pipelines/custom/acme/invoices"
        )

    def test_identifier_segments_are_percent_encoded(self):
        url = build_target_url(BASE, PROXY_ROUTES, IdTarget("a/b c"), None)
        assert url == f"{BASE}/api/proxy/a%2Fb%20c"


class TestAppendPath:
    def test_leading_slash_stripped(self):
        assert append_path("https://x/api/proxy/m", "/cus_123/subs") == "https://x/api/proxy/m/cus_123/subs"

    def test_without_leading_slash(self):
        assert append_path("https://x/api/proxy/m", "cus_123/subs") == "https://x/api/proxy/m/cus_123/subs"

    def test_only_one_leading_slash_stripped(self):
        assert append_path("https://x/m", "//a") == "https://x/m//a"

    def test_empty_path_is_noop(self):
        assert append_path("https://x/m", None) == "https://x/m"
        assert append_path("https://x/m", "") == "https://x/m"

    def test_spaces_are_encoded(self):
        assert append_path("https://x/m", "a b") == "https://x/m/a%20b"


class TestEncodeQuery:
    def test_none_values_dropped(self):
        assert encode_query({"id": "cus_123", "expand": None}) == "id=cus_123"

    def test_booleans_lowercase(self):
        assert encode_query({"active": True, "deleted": False}) == "active=true&deleted=false"

    def test_numbers_stringified(self):
        assert encode_query({"limit": 10}) == "limit=10"

    def test_empty(self):
        assert encode_query({}) == ""
        assert encode_query(None) == ""


# ─────────────────────────────────────────────────────
# Headers and body
# ─────────────────────────────────────────────────────


class TestHeadersAndBody:
    def test_default_headers(self):
        headers = build_headers("key-1")
        assert headers == {"X-API-Key": "key-1", "Content-Type": "application/json"}

    def test_caller_headers_override_defaults(self):
        headers = build_headers("key-1", {"Content-Type": "text/plain", "X-API-Key": "other"})
        assert headers["Content-Type"] == "text/plain"
        assert headers["X-API-Key"] == "other"

    def test_lowercase_override_replaces_default(self):
        headers = build_headers("key-1", {"content-type": "text/plain", "x-api-key": "other"})
        assert headers == {"content-type": "text/plain", "x-api-key": "other"}

    def test_no_content_type_for_multipart(self):
        headers = build_headers("key-1", content_type=None)
        assert "Content-Type" not in headers

    def test_body_serialized_for_post(self):
        assert json.loads(serialize_body("POST", {"name": "John"})) == {"name": "John"}

    def test_string_body_passes_through(self):
        assert serialize_body("PUT", "raw text") == "raw text"

    def test_body_ignored_for_get_and_delete(self):
        assert serialize_body("GET", {"a": 1}) is None
        assert serialize_body("DELETE", {"a": 1}) is None

    def test_missing_body(self):
        assert serialize_body("PATCH", None) is None


# ─────────────────────────────────────────────────────
# File payloads
# ─────────────────────────────────────────────────────


class TestFilePart:
    def test_bytes(self):
        assert file_part(b"abc") == ("file", b"abc", "application/octet-stream")

    def test_bytearray_and_memoryview(self):
        assert file_part(bytearray(b"abc"))[1] == b"abc"
        assert file_part(memoryview(b"abc"))[1] == b"abc"

    def test_filename_drives_content_type(self):
        name, _, mime = file_part(b"a,b", filename="report.csv")
        assert name == "report.csv"
        assert mime == "text/csv"

    def test_explicit_content_type(self):
        assert file_part(b"x", content_type="application/pdf")[2] == "application/pdf"

    def test_path(self, tmp_path):
        path = tmp_path / "invoice.pdf"
        path.write_bytes(b"%PDF-1.4")
        name, content, mime = file_part(path)
        assert name == "invoice.pdf"
        assert content == b"%PDF-1.4"
        assert mime == "application/pdf"

    def test_missing_path_is_config_error(self, tmp_path):
        with pytest.raises(VegapConfigError, match="Cannot read file"):
            file_part(tmp_path / "missing.pdf")

    def test_file_object(self):
        handle = io.BytesIO(b"data")
        name, content, _ = file_part(handle)
        assert name == "file"
        assert content is handle

    def test_text_file_object_rejected(self, tmp_path):
        with pytest.raises(VegapConfigError, match="Unsupported file type"):
            file_part(io.StringIO("a,b\n"))

        path = tmp_path / "rows.csv"
        path.write_text("a,b\n")
        with open(path) as handle:
            with pytest.raises(VegapConfigError, match="Unsupported file type"):
                file_part(handle)

    def test_string_rejected(self):
        with pytest.raises(VegapConfigError, match="Unsupported file type"):
            file_part("invoice.pdf")

    def test_other_types_rejected(self):
        with pytest.raises(VegapConfigError, match="Unsupported file type"):
            file_part(12345)


# ─────────────────────────────────────────────────────
# Request preparation
# ─────────────────────────────────────────────────────


class TestPrepareRequests:
    def test_proxy_request(self):
        call = resolve_proxy_call("stripe-customers", {"path": "/cus_123", "query": {"limit": 10}})
        prepared = prepare_proxy_request(call, BASE, "key-1", "acme")
        assert prepared.method == "GET"
        assert prepared.url == f"{BASE}/api/proxy/custom/acme/stripe-customers/cus_123?limit=10"
        assert prepared.content is None

    def test_transform_request(self):
        call = resolve_transform_call({"mapping_id": "m1", "raw_response": {"id": 1}})
        prepared = prepare_transform_request(call, BASE, "key-1")
        assert prepared.method == "POST"
        assert prepared.url == f"{BASE}/api/transform"
        assert json.loads(prepared.content) == {"mapping_id": "m1", "raw_response": {"id": 1}}

    def test_pipeline_upload_has_no_content_type(self):
        call = resolve_pipeline_call({"pipeline_id": "691b", "file": b"abc"})
        prepared = prepare_pipeline_request(call, BASE, "key-1", None)
        assert "Content-Type" not in prepared.headers
        assert prepared.files == {"file": ("file", b"abc", "application/octet-stream")}
        assert prepared.content is None

    def test_pipeline_data_is_wrapped(self):
        call = resolve_pipeline_call({"pipeline_id": "691b", "data": {"amount": 1}})
        prepared = prepare_pipeline_request(call, BASE, "key-1", None)
        assert prepared.headers["Content-Type"] == "application/json"
        assert json.loads(prepared.content) == {"data": {"amount": 1}}
        assert prepared.files is None
