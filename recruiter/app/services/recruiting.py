"""Posting and interview-kit operations built on the generation client."""

import re

from recruiter.app.api.schemas import InterviewKit, KitRequest, PostingRequest
from recruiter.app.core.logging import get_logger
from recruiter.app.exceptions import UpstreamError
from recruiter.app.services.generation import GenerationClient, GenerationRequest
from recruiter.app.services.prompts import (
    KIT_SYSTEM_PROMPT,
    POSTING_SYSTEM_PROMPT,
    build_kit_prompt,
    build_posting_prompt,
)

logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n(?P<body>.*?)\n?```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a Markdown code fence wrapped around the whole text."""
    match = _CODE_FENCE.match(text)
    return match.group("body").strip() if match else text.strip()


class RecruitingService:
    """The two operations the UI calls: generate posting, generate kit.

    Inputs arrive already validated; errors from the generation client
    propagate unchanged for the API layer to categorize.
    """

    def __init__(self, client: GenerationClient):
        self.client = client

    async def generate_posting(self, posting: PostingRequest) -> str:
        """Return the posting as HTML text."""
        request = GenerationRequest(
            system_prompt=POSTING_SYSTEM_PROMPT,
            user_prompt=build_posting_prompt(
                title=posting.title,
                seniority=posting.seniority,
                team=posting.team,
                location=posting.location,
                remote_policy=posting.remote_policy,
                must_have_skills=posting.must_have_skills,
                nice_to_have_skills=posting.nice_to_have_skills,
                responsibilities=posting.responsibilities,
                requirements=posting.requirements,
                benefits=posting.benefits,
            ),
        )
        result = await self.client.generate(request)
        html = strip_code_fence(result.raw_text)
        if not html:
            raise UpstreamError(502, "completion response has no posting content")
        return html

    async def generate_kit(self, kit_request: KitRequest) -> InterviewKit:
        """Return the kit; an unparseable answer gives the empty kit."""
        request = GenerationRequest(
            system_prompt=KIT_SYSTEM_PROMPT,
            user_prompt=build_kit_prompt(kit_request.role_title, kit_request.seniority),
            expect_structured=True,
        )
        result = await self.client.generate(request)
        kit = InterviewKit.from_structured(result.structured)
        if kit.is_empty:
            logger.warning(f"Interview kit for '{kit_request.role_title}' came back empty")
        return kit
