"""
MemoTap Backend — Shared FastAPI Dependencies
===============================================

What:  Dependency providers for objects built once in the application lifespan.
How:   The lifespan stores the ExtractionPipeline on app.state; these functions
       hand it to route handlers via Depends().
Who:   Recording and health routes. Tests replace them through
       app.dependency_overrides to inject a pipeline with an isolated key pool.
"""

from typing import Optional

from fastapi import Request

from app.exceptions import LLMServiceError
from app.services.extraction_service import ExtractionPipeline
from app.services.key_pool import CredentialPool


def get_extraction_pipeline(request: Request) -> ExtractionPipeline:
    pipeline = getattr(request.app.state, "extraction_pipeline", None)
    if pipeline is None:
        raise LLMServiceError(
            message="Voice processing is not available right now. Please try again later.",
            context={"reason": "extraction pipeline not initialized"},
        )
    return pipeline


def get_optional_pipeline(request: Request) -> Optional[ExtractionPipeline]:
    """Like get_extraction_pipeline, but None before startup instead of an error."""
    return getattr(request.app.state, "extraction_pipeline", None)


def get_key_pool(request: Request) -> CredentialPool:
    """The pool the running pipeline rotates through (empty before startup)."""
    pipeline = getattr(request.app.state, "extraction_pipeline", None)
    if pipeline is None:
        return CredentialPool([])
    return pipeline.key_pool
