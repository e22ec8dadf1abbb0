"""
Runtime container for the API.

One MentorRuntime is built at startup and holds every piece of
process-local state: the DKB store, the current syllabus and the clients.
Endpoints receive it through Depends(get_runtime); tests override that
dependency with a runtime built from fake providers.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from config import Settings, get_settings
from src.curriculum.evaluation import EvaluationEngine
from src.curriculum.generator import SyllabusGenerator
from src.curriculum.state_machine import CurriculumStateMachine
from src.llm.completion_client import CompletionClient, CompletionProvider, build_completion_provider
from src.mentor.dkb import DKBStore
from src.mentor.orchestrator import MentorOrchestrator
from src.mentor.suggestions import SuggestionService
from src.semantic.embedding_service import (
    EmbeddingGateway,
    EmbeddingProvider,
    build_embedding_provider,
)


@dataclass
class MentorRuntime:
    """Everything a request handler needs, wired once."""

    settings: Settings
    gateway: EmbeddingGateway
    chat_client: CompletionClient
    generation_client: CompletionClient
    store: DKBStore
    orchestrator: MentorOrchestrator
    suggestions: SuggestionService
    evaluator: EvaluationEngine
    generator: SyllabusGenerator
    curriculum: CurriculumStateMachine

    @classmethod
    def build(
        cls,
        settings: Settings | None = None,
        embedding_provider: EmbeddingProvider | None = None,
        chat_provider: CompletionProvider | None = None,
        generation_provider: CompletionProvider | None = None,
    ) -> MentorRuntime:
        """Wire components; providers not passed explicitly come from settings."""
        settings = settings or get_settings()
        if embedding_provider is None:
            embedding_provider = build_embedding_provider(settings)
        if chat_provider is None:
            chat_provider = build_completion_provider(settings, settings.chat_model)
        if generation_provider is None:
            generation_provider = build_completion_provider(settings, settings.generation_model)

        gateway = EmbeddingGateway(embedding_provider, settings)
        chat_client = CompletionClient(chat_provider, settings)
        generation_client = CompletionClient(generation_provider, settings)
        store = DKBStore(gateway, settings)
        evaluator = EvaluationEngine(generation_client, settings)
        generator = SyllabusGenerator(generation_client, settings)

        return cls(
            settings=settings,
            gateway=gateway,
            chat_client=chat_client,
            generation_client=generation_client,
            store=store,
            orchestrator=MentorOrchestrator(store, chat_client, settings=settings),
            suggestions=SuggestionService(generation_client),
            evaluator=evaluator,
            generator=generator,
            curriculum=CurriculumStateMachine(store, evaluator, generator, settings),
        )

    def health(self) -> dict:
        return {
            "embeddings": self.gateway.get_provider_info(),
            "chat": self.chat_client.get_provider_info(),
            "generation": self.generation_client.get_provider_info(),
            "dkb": self.store.stats(),
            "syllabus_loaded": self.curriculum.syllabus is not None,
        }


def get_runtime(request: Request) -> MentorRuntime:
    """FastAPI dependency: the runtime created in the app lifespan."""
    return request.app.state.runtime
