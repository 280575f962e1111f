"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from fastapi import FastAPI

from evidence_engine.admission.controller import AdmissionController
from evidence_engine.api.auth import router as auth_router
from evidence_engine.api.errors import engine_error_handler
from evidence_engine.api.middleware import RequestContextMiddleware
from evidence_engine.api.routes_evidence import router as evidence_router
from evidence_engine.api.routes_health import router as health_router
from evidence_engine.catalog.memory_corpus import MemoryCorpus
from evidence_engine.config.settings import Settings
from evidence_engine.embeddings.cache import EmbeddingCache
from evidence_engine.embeddings.cached_embedder import CachedEmbedder
from evidence_engine.embeddings.openai_embedder import OpenAIEmbedder
from evidence_engine.exceptions import ConfigurationError, EvidenceEngineError
from evidence_engine.generation.gemini_provider import GeminiProvider
from evidence_engine.observability.logger import get_logger, setup_logging
from evidence_engine.pipeline.evidence_pipeline import EvidencePipeline
from evidence_engine.protocols.embedder import Embedder
from evidence_engine.protocols.llm import GenerationService

logger = get_logger("app")


@dataclass
class Services:
    """External collaborators the pipeline runs against."""

    embedder: Embedder
    corpus: MemoryCorpus
    llm: GenerationService


async def build_services(settings: Settings) -> Services:
    if not settings.openai_api_key or not settings.google_api_key:
        raise ConfigurationError(
            "EVIDENCE_OPENAI_API_KEY and EVIDENCE_GOOGLE_API_KEY must be set"
        )
    Path(settings.embedding_cache_db_path).parent.mkdir(parents=True, exist_ok=True)

    raw_embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        _dimensions=settings.embedding_dimensions,
        max_query_chars=settings.embedding_max_query_chars,
        retry_attempts=settings.embedding_retry_attempts,
    )
    embedding_cache = EmbeddingCache(settings.embedding_cache_db_path, settings.embedding_model)
    await embedding_cache.initialize()

    return Services(
        embedder=CachedEmbedder(delegate=raw_embedder, cache=embedding_cache),
        corpus=MemoryCorpus.load(settings.corpus_path, settings.embedding_dimensions),
        llm=GeminiProvider(api_key=settings.google_api_key, model=settings.gemini_model),
    )


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or Settings()
        setup_logging()

        svc = services or await build_services(app_settings)
        admission = AdmissionController(app_settings)
        pipeline = EvidencePipeline(
            embedder=svc.embedder,
            search=svc.corpus,
            catalog=svc.corpus,
            llm=svc.llm,
            admission=admission,
            settings=app_settings,
        )

        app.state.settings = app_settings
        app.state.pipeline = pipeline
        app.state.admission = admission
        app.state.corpus = svc.corpus

        logger.info(
            "startup_complete",
            scopes=svc.corpus.scope_count,
            units=svc.corpus.unit_count,
            selection_strategy=app_settings.selection_strategy,
        )

        yield

        await admission.close()
        logger.info("shutdown_complete")

    app = FastAPI(
        title="Evidence Engine",
        version="1.0.0",
        description="Evidence selection and citation-validated document generation",
        lifespan=lifespan,
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(EvidenceEngineError, engine_error_handler)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(evidence_router, tags=["evidence"])
    return app
