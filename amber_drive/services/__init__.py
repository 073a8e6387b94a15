"""
Business services for Amber Drive admin.
"""

from amber_drive.services.auth_service import AuthContext, AuthService, require_auth
from amber_drive.services.catalog_service import CarCatalogService
from amber_drive.services.quote_service import QuoteService, generate_quote_number
from amber_drive.services.ai_search_service import AISearchService
from amber_drive.services.stats_service import StatsService

__all__ = [
    "AuthContext",
    "AuthService",
    "require_auth",
    "CarCatalogService",
    "QuoteService",
    "generate_quote_number",
    "AISearchService",
    "StatsService",
]
