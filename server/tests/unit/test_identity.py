"""Unit tests for the customer profile lookup client."""

import httpx
import pytest

from cabinops.services.identity import IdentityLookup, IdentityResolver, parse_profile

CLERK_USER = {
    "id": "user_1",
    "first_name": "Jane",
    "last_name": "Guest",
    "primary_email_address_id": "idn_2",
    "email_addresses": [
        {"id": "idn_1", "email_address": "old@example.com"},
        {"id": "idn_2", "email_address": "jane@example.com"},
    ],
    "phone_numbers": [{"phone_number": "+15550100"}],
    "image_url": "https://img.example.com/jane.png",
}


def _resolver(handler, **kwargs) -> IdentityResolver:
    return IdentityResolver(
        base_url="http://identity.test",
        api_key="sk_test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_parse_clerk_record():
    profile = parse_profile(CLERK_USER)

    assert profile.id == "user_1"
    assert profile.name == "Jane Guest"
    assert profile.email == "jane@example.com"
    assert profile.phone == "+15550100"
    assert profile.image_url == "https://img.example.com/jane.png"


def test_parse_flat_record():
    profile = parse_profile({"id": "u2", "name": "Sam", "email": "sam@example.com", "imageUrl": "x.png"})

    assert profile.name == "Sam"
    assert profile.email == "sam@example.com"
    assert profile.phone is None
    assert profile.image_url == "x.png"


def test_parse_record_without_id():
    assert parse_profile({"name": "Nobody"}) is None


@pytest.mark.asyncio
async def test_resolve_sends_credentials():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=CLERK_USER)

    lookup = await _resolver(handler).resolve("user_1")

    assert seen == {"path": "/users/user_1", "auth": "Bearer sk_test"}
    assert lookup.profile.name == "Jane Guest"
    assert lookup.failed is False


@pytest.mark.asyncio
async def test_unknown_customer_is_not_a_failure():
    lookup = await _resolver(lambda request: httpx.Response(404)).resolve("user_404")

    assert lookup.profile is None
    assert lookup.failed is False


@pytest.mark.asyncio
async def test_provider_error_is_reported_as_failed_lookup():
    lookup = await _resolver(lambda request: httpx.Response(503)).resolve("user_1")

    assert lookup.profile is None
    assert lookup.failed is True


@pytest.mark.asyncio
async def test_transport_error_is_reported_as_failed_lookup():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    lookup = await _resolver(handler).resolve("user_1")

    assert lookup.failed is True


@pytest.mark.asyncio
async def test_malformed_body_is_reported_as_failed_lookup():
    lookup = await _resolver(lambda request: httpx.Response(200, text="<html>")).resolve("user_1")

    assert lookup.failed is True


@pytest.mark.asyncio
async def test_disabled_resolver_makes_no_calls():
    def handler(request):
        raise AssertionError("no request expected")

    resolver = IdentityResolver(base_url="", transport=httpx.MockTransport(handler))

    assert resolver.enabled is False
    assert (await resolver.resolve("user_1")).failed is False
    assert await resolver.resolve_many(["user_1"]) == {"user_1": IdentityLookup()}
    assert await resolver.search_customer_ids("jane") == []


@pytest.mark.asyncio
async def test_empty_customer_id_is_not_looked_up():
    def handler(request):
        raise AssertionError("no request expected")

    lookup = await _resolver(handler).resolve("")

    assert lookup.profile is None
    assert lookup.failed is False


@pytest.mark.asyncio
async def test_resolve_many_uses_one_batch_request():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.params.get_list("user_id"))
        return httpx.Response(200, json={"data": [CLERK_USER]})

    lookups = await _resolver(handler).resolve_many(["user_1", "user_2", "user_1", ""])

    assert calls == [["user_1", "user_2"]]
    assert lookups["user_1"].profile.email == "jane@example.com"
    assert lookups["user_2"].profile is None
    assert lookups["user_2"].failed is False


@pytest.mark.asyncio
async def test_resolve_many_failure_marks_every_id():
    lookups = await _resolver(lambda request: httpx.Response(500)).resolve_many(["a", "b"])

    assert {key: lookup.failed for key, lookup in lookups.items()} == {"a": True, "b": True}


@pytest.mark.asyncio
async def test_search_customer_ids():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["query"] == "jane"
        return httpx.Response(200, json=[CLERK_USER, {"id": "user_7"}, {"name": "no id"}])

    assert await _resolver(handler).search_customer_ids("jane") == ["user_1", "user_7"]


@pytest.mark.asyncio
async def test_failed_search_yields_no_ids():
    assert await _resolver(lambda request: httpx.Response(502)).search_customer_ids("jane") == []


@pytest.mark.asyncio
async def test_find_by_email():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/users"
        assert request.url.params["email_address"] == "jane@example.com"
        assert request.url.params["limit"] == "1"
        return httpx.Response(200, json=[CLERK_USER])

    lookup = await _resolver(handler).find_by_email("jane@example.com")

    assert lookup.profile.id == "user_1"
    assert lookup.failed is False


@pytest.mark.asyncio
async def test_find_by_unknown_email():
    lookup = await _resolver(lambda request: httpx.Response(200, json={"data": []})).find_by_email("x@example.com")

    assert lookup == IdentityLookup()


@pytest.mark.asyncio
async def test_find_by_email_provider_error():
    lookup = await _resolver(lambda request: httpx.Response(500)).find_by_email("jane@example.com")

    assert lookup.profile is None
    assert lookup.failed is True
