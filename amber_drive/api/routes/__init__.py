"""API Routes for Amber Drive admin."""

from amber_drive.api.routes import auth, cars, quotes, ai_search, stats

__all__ = ["auth", "cars", "quotes", "ai_search", "stats"]
