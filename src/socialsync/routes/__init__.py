from .airtable import router as airtable_router
from .health import router as health_router
from .providers import router as providers_router

__all__ = ["airtable_router", "health_router", "providers_router"]
