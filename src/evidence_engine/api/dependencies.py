"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from evidence_engine.admission.controller import AdmissionController
from evidence_engine.catalog.memory_corpus import MemoryCorpus
from evidence_engine.pipeline.evidence_pipeline import EvidencePipeline


def get_pipeline(request: Request) -> EvidencePipeline:
    return request.app.state.pipeline


def get_admission(request: Request) -> AdmissionController:
    return request.app.state.admission


def get_corpus(request: Request) -> MemoryCorpus:
    return request.app.state.corpus
