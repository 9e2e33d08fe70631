from __future__ import annotations

import httpx
import pytest

from meli_gateway.clients.meli_api import MeliApiClient, build_question_query
from meli_gateway.models.tokens import SellerContext, TokenPair
from meli_gateway.schemas import QuestionFilters, QuestionSort
from meli_gateway.services.notifications import NotificationBus


def test_defaults_to_unanswered_first_page() -> None:
    path, params = build_question_query("777")

    assert path == "/questions/search"
    assert params == {
        "seller_id": "777",
        "status": "UNANSWERED",
        "limit": "25",
        "offset": "0",
        "api_version": "4",
    }


def test_question_id_overrides_other_filters() -> None:
    filters = QuestionFilters(question_id=123, status="ANSWERED", item="MLA1")

    path, params = build_question_query("777", filters)

    assert path == "/questions/123"
    assert params == {"api_version": "4"}


def test_from_and_item_are_combined() -> None:
    filters = QuestionFilters(**{"from": "A", "item": "B"})

    path, params = build_question_query("777", filters)

    assert path == "/questions/search"
    assert params["from"] == "A"
    assert params["item"] == "B"
    assert "seller_id" not in params


def test_from_without_item_falls_back_to_seller_search() -> None:
    filters = QuestionFilters(from_user="A")

    _, params = build_question_query("777", filters)

    assert params["seller_id"] == "777"
    assert "from" not in params
    assert "item" not in params


def test_sort_and_pagination_are_forwarded() -> None:
    filters = QuestionFilters(
        status="ANSWERED",
        sort=QuestionSort(order="ASC", fields="date_created"),
        limit=10,
        offset=20,
    )

    _, params = build_question_query("777", filters)

    assert params["status"] == "ANSWERED"
    assert params["sort_types"] == "ASC"
    assert params["sort_fields"] == "date_created"
    assert params["limit"] == "10"
    assert params["offset"] == "20"


@pytest.mark.asyncio
async def test_get_questions_sends_default_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"questions": [], "total": 0})

    client = MeliApiClient(
        SellerContext(seller_id="777", tokens=TokenPair("a", "r")),
        http_client=httpx.AsyncClient(
            base_url="https://api.mercadolibre.test",
            transport=httpx.MockTransport(handler),
        ),
        oauth_client=None,
        token_store=None,
        notifier=NotificationBus(),
    )

    response = await client.get_questions()

    assert response.json()["total"] == 0
    query = seen[0].url.params
    assert seen[0].url.path == "/questions/search"
    assert query["limit"] == "25"
    assert query["offset"] == "0"
    assert query["status"] == "UNANSWERED"
