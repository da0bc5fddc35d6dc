"""Request dependencies resolving the services attached to the application."""

from fastapi import Request

from ebook_studio.capabilities import CapabilityResolver
from ebook_studio.context import get_default_context
from ebook_studio.services.ai_service import AIService
from ebook_studio.services.assembler import ExportAssembler
from ebook_studio.services.orchestrator import GenerationOrchestrator
from ebook_studio.services.storage import ProjectStore


def get_store(request: Request) -> ProjectStore:
    state = request.app.state
    if getattr(state, "store", None) is None:
        state.store = ProjectStore()
    return state.store


def get_ai_service(request: Request) -> AIService:
    state = request.app.state
    if getattr(state, "ai_service", None) is None:
        resolver = CapabilityResolver(get_store(request), get_default_context())
        state.ai_service = AIService(resolver)
    return state.ai_service


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    store = get_store(request)
    ai_service = get_ai_service(request)
    return GenerationOrchestrator(store, ai_service, ExportAssembler(store, ai_service))
