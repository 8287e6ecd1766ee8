"""Services package for the generation service.

This package provides:
- Structured extraction from free-form model output
- The generation client (timeouts, retries, extraction)
- The posting and interview-kit operations
"""

from recruiter.app.services.extractor import extract_structured
from recruiter.app.services.generation import (
    GenerationClient,
    GenerationRequest,
    GenerationResult,
)
from recruiter.app.services.recruiting import RecruitingService

__all__ = [
    "extract_structured",
    "GenerationClient",
    "GenerationRequest",
    "GenerationResult",
    "RecruitingService",
]
