"""
AI-assisted car search.

Proxies a natural-language request to the language model together with a
compact table of the active fleet, and returns the matching car IDs.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from amber_drive.exceptions import UpstreamError, ValidationError
from amber_drive.services.auth_service import AuthContext, require_auth
from amber_drive.services.catalog_service import CarCatalogService
from amber_drive.utils.ai_client import AIClient, ai_client, prompt_builder
from amber_drive.utils.logging import ServiceLogger


class AISearchService:
    """Natural-language search over active cars."""

    def __init__(
        self,
        session: AsyncSession,
        auth: AuthContext | None,
        client: AIClient | None = None,
    ):
        self.session = session
        self.auth = require_auth(auth)
        self.client = client or ai_client
        self.logger = ServiceLogger("ai_search")

    async def search_cars(self, prompt: str) -> dict[str, Any]:
        """
        Ask the model which active cars match a request.

        Args:
            prompt: Free-text request, e.g. "a convertible under 800"

        Returns:
            Dict with `car_ids` (active car IDs, model order) and `message`

        Raises:
            ValidationError: Blank prompt
            UpstreamError: Model call failed or returned an unusable body
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError("Prompt is required")

        cars = await CarCatalogService(self.session, self.auth).list_active_cars()
        if not cars:
            return {"car_ids": [], "message": "No active cars in the catalog"}

        with self.logger.operation(
            "search_cars", user_id=self.auth.user_id, active_cars=len(cars),
        ) as op:
            response = await self.client.generate_json(
                prompt=prompt,
                system_prompt=prompt_builder.car_search_prompt(prompt_builder.car_table(cars)),
            )

            raw_ids = response.get("car_ids")
            if not isinstance(raw_ids, list):
                raise UpstreamError("AI response has no car_ids list")

            active_ids = {car.id for car in cars}
            car_ids: list[int] = []
            for value in raw_ids:
                # bool is an int subclass
                if isinstance(value, bool) or not isinstance(value, int):
                    continue
                if value in active_ids and value not in car_ids:
                    car_ids.append(value)

            op["returned"] = len(raw_ids)
            op["matched"] = len(car_ids)

        message = response.get("message")
        return {
            "car_ids": car_ids,
            "message": message if isinstance(message, str) else "",
        }
