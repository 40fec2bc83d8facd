from fastapi import Request

from webrag.core.query_agent import QueryAgent
from webrag.core.vector_store import VectorStore
from webrag.ingestion.service import IngestionService


# Components are built once in the app lifespan and live on app.state
def get_vector_store(request: Request) -> VectorStore:
    return request.app.state.vector_store


def get_query_agent(request: Request) -> QueryAgent:
    return request.app.state.query_agent


def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service
