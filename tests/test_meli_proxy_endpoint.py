try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from meli_gateway.clients.sqlite_store import SQLiteStore
from meli_gateway.main import app
from meli_gateway.models.tokens import RefreshFailure, RefreshSuccess, TokenPair
from meli_gateway.services.meli_tokens import MeliTokenService
from meli_gateway.services.notifications import NotificationBus
from meli_gateway.services.token_cipher import TokenCipherService

pytestmark = pytest.mark.anyio


class ScriptedOAuthClient:
    def __init__(self) -> None:
        self.result = RefreshSuccess(tokens=TokenPair("APP_USR-2", "TG-2"), expires_in=21600)
        self.calls: list[str] = []

    async def refresh_access_token(self, refresh_token: str):
        self.calls.append(refresh_token)
        return self.result


class UpstreamStub:
    """Stands in for the MercadoLibre API behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses: httpx.Response) -> None:
        self.routes[(method, path)] = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "resource not found"})
        return queue.pop(0) if len(queue) > 1 else queue[0]


@pytest.fixture()
def gateway(tmp_path):
    from meli_gateway import dependencies

    token_service = MeliTokenService(
        store=SQLiteStore(str(tmp_path / "gateway.db")),
        token_cipher=TokenCipherService(secret="test"),
    )
    token_service.save_tokens("42", TokenPair("APP_USR-1", "TG-1"))
    upstream = UpstreamStub()
    oauth = ScriptedOAuthClient()
    bus = NotificationBus()
    http_client = httpx.AsyncClient(
        base_url="https://api.mercadolibre.test",
        transport=httpx.MockTransport(upstream),
    )

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_meli_token_service: lambda: token_service,
            dependencies.get_meli_http_client: lambda: http_client,
            dependencies.get_meli_oauth_client: lambda: oauth,
            dependencies.get_notification_bus: lambda: bus,
        }
    )
    yield upstream, oauth, token_service

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


async def test_questions_are_relayed_with_default_filters(gateway):
    upstream, _, _ = gateway
    upstream.add(
        "GET", "/questions/search", httpx.Response(200, json={"questions": [], "total": 0})
    )

    async with _client() as client:
        response = await client.get("/api/meli/questions", params={"user_id": "42"})

    assert response.status_code == 200
    assert response.json() == {"questions": [], "total": 0}
    query = upstream.requests[0].url.params
    assert query["seller_id"] == "42"
    assert query["status"] == "UNANSWERED"
    assert query["limit"] == "25"
    assert query["offset"] == "0"


async def test_single_question_lookup(gateway):
    upstream, _, _ = gateway
    upstream.add("GET", "/questions/123", httpx.Response(200, json={"id": 123}))

    async with _client() as client:
        response = await client.get(
            "/api/meli/questions",
            params={"user_id": "42", "question_id": 123, "status": "ANSWERED"},
        )

    assert response.json() == {"id": 123}
    assert "status" not in upstream.requests[0].url.params


async def test_upstream_errors_are_relayed_verbatim(gateway):
    upstream, _, _ = gateway
    upstream.add(
        "GET",
        "/items/MLA1",
        httpx.Response(
            404, json={"message": "Item with id MLA1 not found", "error": "not_found"}
        ),
    )

    async with _client() as client:
        response = await client.get("/api/meli/items/MLA1", params={"user_id": "42"})

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


async def test_non_json_upstream_body_is_relayed_as_is(gateway):
    upstream, _, _ = gateway
    page = b"<html><body>Service Unavailable</body></html>"
    upstream.add(
        "GET",
        "/items/MLA1",
        httpx.Response(503, content=page, headers={"content-type": "text/html"}),
    )

    async with _client() as client:
        response = await client.get("/api/meli/items/MLA1", params={"user_id": "42"})

    assert response.status_code == 503
    assert response.content == page
    assert response.headers["content-type"].startswith("text/html")


async def test_expired_token_is_refreshed_and_persisted(gateway):
    upstream, oauth, token_service = gateway
    upstream.add(
        "PUT",
        "/items/MLA1",
        httpx.Response(401, json={"message": "invalid_token"}),
        httpx.Response(200, json={"id": "MLA1", "available_quantity": 5}),
    )

    async with _client() as client:
        response = await client.put(
            "/api/meli/items/MLA1/stock",
            params={"user_id": "42"},
            json={"available_quantity": 5},
        )

    assert response.status_code == 200
    assert oauth.calls == ["TG-1"]
    assert [r.headers["Authorization"] for r in upstream.requests] == [
        "Bearer APP_USR-1",
        "Bearer APP_USR-2",
    ]
    assert token_service.get_tokens("42") == TokenPair("APP_USR-2", "TG-2")


async def test_rejected_refresh_asks_to_link_again(gateway):
    upstream, oauth, token_service = gateway
    oauth.result = RefreshFailure(reason="invalid_grant", status_code=400)
    upstream.add("GET", "/orders/search", httpx.Response(401, json={"message": "expired"}))

    async with _client() as client:
        response = await client.get("/api/meli/orders", params={"user_id": "42"})

    assert response.status_code == 401
    assert response.json() == {
        "message": "Please link MercadoLibre again",
        "action": "link_meli",
    }
    assert len(upstream.requests) == 1
    assert token_service.get_tokens("42") == TokenPair("APP_USR-1", "TG-1")


async def test_unlinked_seller_is_rejected(gateway):
    upstream, _, _ = gateway

    async with _client() as client:
        response = await client.get("/api/meli/items", params={"user_id": "999"})

    assert response.status_code == 401
    assert response.json()["detail"] == "MercadoLibre account not connected."
    assert upstream.requests == []


async def test_resource_path_must_be_relative(gateway):
    async with _client() as client:
        response = await client.get(
            "/api/meli/resource",
            params={"user_id": "42", "path": "https://evil.example/steal"},
        )

    assert response.status_code == 400


async def test_transport_failure_maps_to_bad_gateway(gateway):
    from meli_gateway import dependencies

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    broken = httpx.AsyncClient(
        base_url="https://api.mercadolibre.test", transport=httpx.MockTransport(unreachable)
    )
    app.dependency_overrides[dependencies.get_meli_http_client] = lambda: broken

    async with _client() as client:
        response = await client.get("/api/meli/orders/1", params={"user_id": "42"})

    assert response.status_code == 502
