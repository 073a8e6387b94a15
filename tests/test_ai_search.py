"""
Tests for the AI car search service and the chat completion client.
"""

import json
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from amber_drive.exceptions import UpstreamError, ValidationError
from amber_drive.models.car import CarCategory, CarStatus
from amber_drive.services.ai_search_service import AISearchService
from amber_drive.utils.ai_client import AIClient, AIPromptBuilder, parse_json_object


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestAISearchService:
    """Tests for AISearchService."""

    @pytest.fixture
    def client(self):
        client = AsyncMock(spec=AIClient)
        client.generate_json.return_value = {"car_ids": []}
        return client

    @pytest.mark.asyncio
    async def test_empty_catalog_skips_model(self, session, auth, client):
        result = await AISearchService(session, auth, client=client).search_cars("a red convertible")

        assert result["car_ids"] == []
        client.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_prompt(self, session, auth, client):
        with pytest.raises(ValidationError):
            await AISearchService(session, auth, client=client).search_cars("   ")

    @pytest.mark.asyncio
    async def test_returns_only_active_ids(self, session, auth, client, make_car):
        active_a = await make_car(name="Portofino", brand="Ferrari", category=CarCategory.CABRIO)
        active_b = await make_car(name="Urus", brand="Lamborghini", category=CarCategory.SUV)
        archived = await make_car(name="Old", status=CarStatus.ARCHIVED)
        client.generate_json.return_value = {
            "car_ids": [active_b.id, archived.id, 999, "1", True, active_a.id, active_b.id],
            "message": "Two matches",
        }

        result = await AISearchService(session, auth, client=client).search_cars("fast cars")

        assert result == {"car_ids": [active_b.id, active_a.id], "message": "Two matches"}

    @pytest.mark.asyncio
    async def test_prompt_contains_active_car_table(self, session, auth, client, make_car):
        car = await make_car(name="Portofino", brand="Ferrari", category=CarCategory.CABRIO,
                             default_price=Decimal("1200.00"))
        await make_car(name="Hidden", status=CarStatus.INACTIVE)

        await AISearchService(session, auth, client=client).search_cars("convertible")

        kwargs = client.generate_json.call_args.kwargs
        assert kwargs["prompt"] == "convertible"
        assert f"{car.id}|Portofino|Ferrari|Cabrio|1200" in kwargs["system_prompt"]
        assert "Hidden" not in kwargs["system_prompt"]

    @pytest.mark.asyncio
    async def test_fleet_comes_from_catalog(self, session, auth, client, make_car):
        car = await make_car(name="Urus", brand="Lamborghini", category=CarCategory.SUV)
        client.generate_json.return_value = {"car_ids": [car.id]}

        with patch(
            "amber_drive.services.ai_search_service.CarCatalogService.list_active_cars",
            AsyncMock(return_value=[car]),
        ) as list_active_cars:
            result = await AISearchService(session, auth, client=client).search_cars("an SUV")

        list_active_cars.assert_awaited_once()
        assert result["car_ids"] == [car.id]

    @pytest.mark.asyncio
    async def test_missing_car_ids_is_upstream_error(self, session, auth, client, make_car):
        await make_car()
        client.generate_json.return_value = {"cars": [1]}

        with pytest.raises(UpstreamError):
            await AISearchService(session, auth, client=client).search_cars("anything")

    @pytest.mark.asyncio
    async def test_client_failure_propagates(self, session, auth, client, make_car):
        await make_car()
        client.generate_json.side_effect = UpstreamError("AI API error: 503")

        with pytest.raises(UpstreamError):
            await AISearchService(session, auth, client=client).search_cars("anything")


class TestAIClient:
    """Tests for AIClient against a mocked HTTP transport."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion('{"car_ids": [3, 1]}'))

        client = AIClient(transport=httpx.MockTransport(handler))
        result = await client.generate_json("sporty", system_prompt="table")

        assert result == {"car_ids": [3, 1]}
        assert seen["url"].endswith("/chat/completions")
        assert seen["body"]["temperature"] == 0.3
        assert seen["body"]["max_tokens"] == 500
        assert seen["body"]["response_format"] == {"type": "json_object"}
        assert seen["body"]["messages"][0] == {"role": "system", "content": "table"}
        assert seen["body"]["messages"][1] == {"role": "user", "content": "sporty"}

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client = AIClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))

        with pytest.raises(UpstreamError):
            await client.generate_json("x")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = AIClient(transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError):
            await client.generate_text("x")

    @pytest.mark.asyncio
    async def test_non_json_content(self):
        client = AIClient(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json=completion("I cannot help with that"))
        ))

        with pytest.raises(UpstreamError):
            await client.generate_json("x")

    @pytest.mark.asyncio
    async def test_missing_choices(self):
        client = AIClient(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"error": "nope"})
        ))

        with pytest.raises(UpstreamError):
            await client.generate_text("x")


class TestPromptHelpers:
    """Tests for prompt building and JSON extraction."""

    def test_car_table_rows(self):
        cars = [
            SimpleNamespace(id=1, name="Urus", brand="Lamborghini", category=CarCategory.SUV,
                            default_price=Decimal("899.50")),
            SimpleNamespace(id=2, name="Ghost", brand="Rolls-Royce", category=CarCategory.SEDAN,
                            default_price=Decimal("1500.00")),
        ]

        table = AIPromptBuilder.car_table(cars)

        assert table == "1|Urus|Lamborghini|SUV|899.5\n2|Ghost|Rolls-Royce|Sedan|1500"

    def test_empty_table_is_valid(self):
        prompt = AIPromptBuilder.car_search_prompt(AIPromptBuilder.car_table([]))
        assert '"car_ids"' in prompt

    def test_parse_json_object(self):
        assert parse_json_object('{"car_ids": [4], "message": "ok"}') == {"car_ids": [4], "message": "ok"}

    def test_parse_json_rejects_surrounding_text(self):
        """Prose around the object is a malformed reply, not something to dig through."""
        with pytest.raises(UpstreamError):
            parse_json_object('Sure! {"car_ids": [4]} Enjoy.')

    def test_parse_json_rejects_arrays(self):
        with pytest.raises(UpstreamError):
            parse_json_object("[1, 2]")
