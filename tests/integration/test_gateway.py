import json

import httpx
import pytest
import respx

from socialsync.config import AirtableConfig
from socialsync.errors import ConfigurationError, InvalidRequestError, TransportError, UpstreamError
from socialsync.gateway import AirtableGateway, RestProxy
from socialsync.models import RequestDescriptor

API = "https://airtable.test/v0"


@pytest.mark.asyncio
async def test_meta_path_resolves_with_base_id(airtable_config):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        route = mock.get(f"{API}/meta/bases/appXYZ/tables").respond(200, json={"tables": []})

        result = await gateway.dispatch(RequestDescriptor(method="GET", path="meta/bases/tables"))

    assert result == {"tables": []}
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_post_attaches_serialized_body(airtable_config):
    gateway = AirtableGateway(airtable_config)
    body = {"records": [{"fields": {"name": "Acme", "tags": ["a", "b"], "score": 1.5}}]}
    upstream_reply = {"records": [{"id": "rec1", "fields": {"name": "Acme"}}]}

    with respx.mock(assert_all_called=True) as mock:
        route = mock.post(f"{API}/appXYZ/Brands").respond(200, json=upstream_reply)

        result = await gateway.dispatch(RequestDescriptor(method="POST", path="Brands", body=body))

    sent = route.calls.last.request
    assert json.loads(sent.content) == body
    assert result == upstream_reply


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["PATCH", "PUT"])
async def test_patch_and_put_attach_body(airtable_config, method):
    gateway = AirtableGateway(airtable_config)
    body = {"records": [{"id": "rec1", "fields": {"name": "Renamed"}}]}

    with respx.mock(assert_all_called=True) as mock:
        route = mock.route(method=method, url=f"{API}/appXYZ/Brands").respond(200, json={})

        await gateway.dispatch(RequestDescriptor(method=method, path="Brands", body=body))

    assert json.loads(route.calls.last.request.content) == body


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["GET", "DELETE"])
async def test_get_and_delete_never_attach_body(airtable_config, method):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        route = mock.route(method=method, url=f"{API}/appXYZ/Brands").respond(200, json={})

        await gateway.dispatch(
            RequestDescriptor(method=method, path="Brands", body={"records": ["ignored"]})
        )

    assert route.calls.last.request.content == b""


@pytest.mark.asyncio
async def test_default_headers_are_sent(airtable_config):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        route = mock.get(f"{API}/appXYZ/Brands").respond(200, json={})

        await gateway.dispatch(RequestDescriptor(path="Brands"))

    headers = route.calls.last.request.headers
    assert headers["authorization"] == "Bearer pat_test"
    assert headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_caller_headers_override_defaults(airtable_config):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        route = mock.get(f"{API}/appXYZ/Brands").respond(200, json={})

        await gateway.dispatch(
            RequestDescriptor(
                path="Brands",
                headers={
                    "content-type": "application/vnd.custom+json",
                    "Authorization": "Bearer override",
                    "X-Extra": "1",
                },
            )
        )

    headers = route.calls.last.request.headers
    assert headers.get_list("content-type") == ["application/vnd.custom+json"]
    assert headers.get_list("authorization") == ["Bearer override"]
    assert headers["x-extra"] == "1"


@pytest.mark.asyncio
async def test_hop_by_hop_headers_are_dropped(airtable_config):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        route = mock.get(f"{API}/appXYZ/Brands").respond(200, json={})

        await gateway.dispatch(
            RequestDescriptor(path="Brands", headers={"Connection": "close", "Host": "evil"})
        )

    headers = route.calls.last.request.headers
    assert headers.get("connection") != "close"
    assert headers["host"] == "airtable.test"


@pytest.mark.asyncio
async def test_upstream_error_embeds_status_and_body(airtable_config):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{API}/appXYZ/Missing").respond(404, json={"error": "NOT_FOUND"})

        with pytest.raises(UpstreamError) as exc_info:
            await gateway.dispatch(RequestDescriptor(path="Missing"))

    message = str(exc_info.value)
    assert "404" in message
    assert "Not Found" in message
    assert "NOT_FOUND" in message
    assert exc_info.value.upstream_status == 404
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_non_json_error_body_is_kept_raw(airtable_config):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{API}/appXYZ/Brands").respond(502, text="Bad gateway from proxy")

        with pytest.raises(UpstreamError, match="502 Bad Gateway - Bad gateway from proxy"):
            await gateway.dispatch(RequestDescriptor(path="Brands"))


@pytest.mark.asyncio
async def test_success_with_invalid_json_is_transport_error(airtable_config):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{API}/appXYZ/Brands").respond(200, text="<html>not json</html>")

        with pytest.raises(TransportError):
            await gateway.dispatch(RequestDescriptor(path="Brands"))


@pytest.mark.asyncio
async def test_network_failure_is_transport_error(airtable_config):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{API}/appXYZ/Brands").mock(side_effect=httpx.ConnectError("Connection refused"))

        with pytest.raises(TransportError, match="Connection refused"):
            await gateway.dispatch(RequestDescriptor(path="Brands"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "config",
    [
        AirtableConfig(api_url=API, token=None, base_id="appXYZ"),
        AirtableConfig(api_url=API, token="pat_test", base_id=None),
    ],
)
async def test_missing_credentials_fail_before_network(config):
    gateway = AirtableGateway(config)

    with respx.mock(assert_all_called=False) as mock:
        route = mock.route()

        with pytest.raises(ConfigurationError, match="credentials not configured"):
            await gateway.dispatch(RequestDescriptor(path="Brands"))

    assert route.call_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("path", [None, ""])
async def test_missing_path_fails_before_network(airtable_config, path):
    gateway = AirtableGateway(airtable_config)

    with respx.mock(assert_all_called=False) as mock:
        route = mock.route()

        with pytest.raises(InvalidRequestError, match="Missing path"):
            await gateway.dispatch(RequestDescriptor(path=path))

    assert route.call_count == 0


@pytest.mark.asyncio
async def test_credentials_are_checked_before_path():
    gateway = AirtableGateway(AirtableConfig(api_url=API))

    with pytest.raises(ConfigurationError):
        await gateway.dispatch(RequestDescriptor(path=None))


@pytest.mark.asyncio
async def test_rest_proxy_session_shares_client():
    proxy = RestProxy("Example", "https://example.test/api", default_headers={"X-Key": "k"})

    with respx.mock(assert_all_called=True) as mock:
        route = mock.post("https://example.test/api/items").respond(201, json={"id": 1})

        async with proxy.session():
            first = await proxy.send("POST", "items", body={"a": 1})
            second = await proxy.send("POST", "/items", body={"a": 2})

    assert first.status_code == 201
    assert first.body == {"id": 1}
    assert second.body == {"id": 1}
    assert route.call_count == 2
    assert route.calls.last.request.headers["x-key"] == "k"
    assert route.calls.last.request.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_dispatch_leaves_gateway_headers_untouched(airtable_config):
    gateway = AirtableGateway(airtable_config)
    defaults = dict(gateway.default_headers)

    with respx.mock(assert_all_called=True) as mock:
        mock.get(f"{API}/appXYZ/Brands").respond(200, json={})

        await gateway.dispatch(
            RequestDescriptor(path="Brands", headers={"Authorization": "Bearer override"})
        )

    assert gateway.default_headers == defaults
    assert defaults == {"Content-Type": "application/json", "Authorization": "Bearer pat_test"}


def test_unconfigured_gateway_has_no_bearer_header():
    gateway = AirtableGateway(AirtableConfig(api_url=API))

    assert "Authorization" not in gateway.default_headers
