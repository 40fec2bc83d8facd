from webrag.routers.ingest import router as ingest_router
from webrag.routers.query import router as query_router
from webrag.routers.library import router as library_router

__all__ = ["ingest_router", "query_router", "library_router"]
