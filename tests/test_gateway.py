from __future__ import annotations

import json
import logging

import httpx
import pytest

from auction_bot.errors import ApiError
from auction_bot.gateway import (
    NOT_AUTHENTICATED,
    ApiGateway,
    body_excerpt,
    error_message,
    parse_body,
    unwrap,
)
from auction_bot.session import Session, StoredUser

BASE = "https://api.test"
KEY_PATH = "/auth/create-api-key"
LISTINGS_PATH = "/auction/listings"


class FakeApi:
    """Answers requests from a route table and remembers what it saw."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes[(request.method, request.url.path)](request)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


def reply(status: int, body=None, text: str | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status, text=text)
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    return handler


def logged_in() -> Session:
    return Session(access_token="token-123", user=StoredUser(name="alice"))


def make_gateway(client: httpx.AsyncClient, session: Session | None = None, **kwargs) -> ApiGateway:
    return ApiGateway(
        session if session is not None else logged_in(),
        client=client,
        base_url=BASE,
        api_key_header="X-Noroff-API-Key",
        **kwargs,
    )


@pytest.mark.asyncio
async def test_api_key_provisioned_once_and_reused():
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("GET", LISTINGS_PATH): reply(200, {"data": [], "meta": {}}),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        await gateway.request(LISTINGS_PATH)
        await gateway.request(LISTINGS_PATH)

    assert len(api.calls(KEY_PATH)) == 1
    listing_calls = api.calls(LISTINGS_PATH)
    assert len(listing_calls) == 2
    for request in listing_calls:
        assert request.headers["X-Noroff-API-Key"] == "abc"
        assert request.headers["Authorization"] == "Bearer token-123"
        assert request.headers["Content-Type"] == "application/json"
    assert gateway.api_key == "abc"


@pytest.mark.asyncio
async def test_provisioning_request_shape():
    api = FakeApi({("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}})})
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        assert await gateway.ensure_api_key() == "abc"

    (request,) = api.requests
    assert str(request.url) == f"{BASE}{KEY_PATH}"
    assert request.headers["Authorization"] == "Bearer token-123"
    assert "X-Noroff-API-Key" not in request.headers
    assert json.loads(request.content) == {}


@pytest.mark.asyncio
async def test_cached_key_needs_no_network():
    api = FakeApi({})
    session = Session(access_token="token-123", api_key="cached")
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client, session)
        assert await gateway.ensure_api_key() == "cached"
    assert api.requests == []


@pytest.mark.asyncio
async def test_no_token_fails_before_any_request():
    api = FakeApi({})
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client, Session())
        with pytest.raises(ApiError) as request_error:
            await gateway.request("/auction/profiles/alice")
        with pytest.raises(ApiError) as key_error:
            await gateway.ensure_api_key()

    assert str(request_error.value) == NOT_AUTHENTICATED
    assert str(key_error.value) == NOT_AUTHENTICATED
    assert api.requests == []


@pytest.mark.asyncio
async def test_structured_error_message_is_verbatim():
    body = {"errors": [{"message": "Title is required"}], "status": "Bad Request"}
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("POST", LISTINGS_PATH): reply(400, body),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError) as excinfo:
            await gateway.request(LISTINGS_PATH, method="POST", json={"title": ""})

    assert str(excinfo.value) == "Title is required"
    assert excinfo.value.status == 400
    assert "Bad Request" in excinfo.value.body


@pytest.mark.asyncio
async def test_top_level_message_used_without_errors():
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("GET", LISTINGS_PATH): reply(403, {"message": "Forbidden here"}),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError, match="^Forbidden here$"):
            await gateway.request(LISTINGS_PATH)


@pytest.mark.asyncio
async def test_generic_message_carries_status():
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("GET", LISTINGS_PATH): reply(503),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError) as excinfo:
            await gateway.request(LISTINGS_PATH)

    assert "503" in str(excinfo.value)
    assert str(excinfo.value) == "Request failed (HTTP 503)"
    assert excinfo.value.body == ""


@pytest.mark.asyncio
async def test_unwraps_data_or_returns_whole_body():
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("GET", "/wrapped"): reply(200, {"data": {"id": "1"}, "meta": {}}),
            ("GET", "/bare"): reply(200, {"id": "2"}),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        assert await gateway.request("/wrapped") == {"id": "1"}
        assert await gateway.request("/bare") == {"id": "2"}


@pytest.mark.asyncio
async def test_empty_body_yields_none():
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("DELETE", f"{LISTINGS_PATH}/abc-1"): reply(204),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        assert await gateway.request(f"{LISTINGS_PATH}/abc-1", method="DELETE") is None


@pytest.mark.asyncio
async def test_network_failure_is_wrapped():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("GET", LISTINGS_PATH): refuse,
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError) as excinfo:
            await gateway.request(LISTINGS_PATH)

    message = str(excinfo.value)
    assert message.startswith("Network error while calling API")
    assert "connection refused" in message
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_unparseable_body_is_a_network_error():
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("GET", LISTINGS_PATH): reply(200, text="<html>oops</html>"),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError, match="^Network error while calling API"):
            await gateway.request(LISTINGS_PATH)


@pytest.mark.asyncio
async def test_caller_headers_override_defaults():
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("GET", LISTINGS_PATH): reply(200, {"data": []}),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        await gateway.request(
            LISTINGS_PATH, headers={"content-type": "text/plain", "X-Trace": "1"}
        )

    request = api.calls(LISTINGS_PATH)[0]
    assert request.headers.get_list("Content-Type") == ["text/plain"]
    assert request.headers["X-Trace"] == "1"
    assert request.headers["X-Noroff-API-Key"] == "abc"


@pytest.mark.asyncio
async def test_provisioning_without_key_is_its_own_error():
    api = FakeApi({("POST", KEY_PATH): reply(201, {"data": {"name": "alice"}})})
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError) as excinfo:
            await gateway.ensure_api_key()

    assert str(excinfo.value) == "API key creation succeeded but no key was returned."
    assert gateway.api_key is None


@pytest.mark.asyncio
async def test_provisioning_http_failure():
    api = FakeApi({("POST", KEY_PATH): reply(401, {"errors": [{"message": "Invalid token"}]})})
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError, match="^Invalid token$"):
            await gateway.request(LISTINGS_PATH)

    assert api.calls(LISTINGS_PATH) == []


@pytest.mark.asyncio
async def test_provisioning_generic_failure_message():
    api = FakeApi({("POST", KEY_PATH): reply(500)})
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError, match=r"^Failed to create API key \(HTTP 500\)$"):
            await gateway.ensure_api_key()


@pytest.mark.asyncio
async def test_session_changes_are_reported():
    seen: list[Session] = []
    api = FakeApi({("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}})})
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client, on_change=seen.append)
        await gateway.ensure_api_key()
        await gateway.ensure_api_key()

    assert len(seen) == 1
    assert seen[0].api_key == "abc"


@pytest.mark.asyncio
async def test_public_request_sends_no_credentials():
    api = FakeApi({("POST", "/auth/login"): reply(401, {})})
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError, match=r"^Login failed \(HTTP 401\)$"):
            await gateway.public_request("/auth/login", method="POST", json={}, failure="Login failed")

    (request,) = api.requests
    assert "Authorization" not in request.headers
    assert "X-Noroff-API-Key" not in request.headers


def test_start_session_drops_old_key():
    gateway = ApiGateway(Session(access_token="old", api_key="old-key"), base_url=BASE)
    gateway.start_session("new", StoredUser(name="bob"))
    assert gateway.token == "new"
    assert gateway.api_key is None
    gateway.end_session()
    assert gateway.token is None
    assert gateway.user is None


def test_url_joins_relative_paths():
    gateway = ApiGateway(base_url=f"{BASE}/")
    assert gateway.url("/auction/listings") == f"{BASE}/auction/listings"
    assert gateway.url("auction/listings") == f"{BASE}/auction/listings"
    assert gateway.url("https://other.test/x") == "https://other.test/x"


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"errors": [{"message": "first"}, {"message": "second"}], "message": "top"}, "first"),
        ({"errors": [], "message": "top"}, "top"),
        ({"errors": [{"code": "x"}], "message": "top"}, "top"),
        ({"status": "Bad"}, "fallback"),
        (None, "fallback"),
        ("plain text", "fallback"),
    ],
)
def test_error_message_priority(payload, expected):
    assert error_message(payload, "fallback") == expected


def test_envelope_helpers():
    assert parse_body("") is None
    assert parse_body('{"a": 1}') == {"a": 1}
    assert unwrap({"data": [1, 2]}) == [1, 2]
    assert unwrap({"data": None, "id": "x"}) == {"data": None, "id": "x"}
    assert unwrap([1]) == [1]
    assert unwrap(None) is None


@pytest.mark.asyncio
async def test_failed_response_body_is_logged(caplog):
    caplog.set_level(logging.WARNING, logger="auction_bot.gateway")
    body = {"errors": [{"message": "Title is required"}], "statusCode": 400}
    api = FakeApi(
        {
            ("POST", KEY_PATH): reply(201, {"data": {"key": "abc"}}),
            ("POST", LISTINGS_PATH): reply(400, body),
        }
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError) as excinfo:
            await gateway.request(LISTINGS_PATH, method="POST", json={"title": ""})

    assert str(excinfo.value) == "Title is required"
    assert "statusCode" in caplog.text
    assert excinfo.value.body in caplog.text


@pytest.mark.asyncio
async def test_public_failure_body_is_logged(caplog):
    caplog.set_level(logging.WARNING, logger="auction_bot.gateway")
    api = FakeApi({("POST", "/auth/login"): reply(503, text="upstream unavailable")})
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as client:
        gateway = make_gateway(client)
        with pytest.raises(ApiError):
            await gateway.public_request("/auth/login", method="POST", json={}, failure="Login failed")

    assert "upstream unavailable" in caplog.text


def test_body_excerpt_shortens_long_bodies():
    assert body_excerpt("  short  ") == "short"
    excerpt = body_excerpt("x" * 600, limit=500)
    assert excerpt.startswith("x" * 500)
    assert excerpt.endswith("(100 more chars)")


@pytest.mark.asyncio
async def test_aclose_only_closes_private_clients():
    private = ApiGateway(logged_in(), base_url=BASE)
    client = await private._get_client()
    assert await private._get_client() is client
    await private.aclose()
    assert client.is_closed

    async with httpx.AsyncClient(transport=httpx.MockTransport(FakeApi({}))) as shared:
        gateway = make_gateway(shared)
        await gateway.aclose()
        assert not shared.is_closed
