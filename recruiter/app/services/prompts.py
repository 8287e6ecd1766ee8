"""Prompt builders for the posting and interview-kit operations."""

from typing import Iterable, Optional

POSTING_SYSTEM_PROMPT = """You are an expert recruiter. Return clean HTML for a professionally formatted job posting with clear section hierarchy and spacing.

Format guidelines:
- Use <h2> tags with class="text-xl font-bold text-gray-900 mt-8 mb-4" for main sections
- Use <ul> tags with class="list-disc pl-6 space-y-2 mb-6" for bullet points
- Add margin bottom (class="mb-6") after each section
- Each section should have a bold title and well-spaced content
- Use proper paragraph spacing for readability

Required sections in order:
1. Title and Location (at top)
2. About the Role (overview paragraph)
3. Responsibilities (bulleted list)
4. Requirements
  - Must-have (bulleted list)
  - Nice-to-have (bulleted list)
5. Benefits (bulleted list)
6. Equal Opportunity & Legal (at bottom)

Return only the HTML, without Markdown code fences."""

KIT_SYSTEM_PROMPT = """You are an expert technical interviewer. You write interview questions with model answers and reply with a single JSON object only, using this shape:
{
  "technical": [{"q": "question", "a": "detailed answer"}],
  "behavioral": [{"q": "question", "a": "detailed answer"}],
  "scenario": [{"q": "question", "a": "detailed answer"}]
}"""


def _join(items: Optional[Iterable[str]], sep: str) -> str:
    values = [item.strip() for item in items or () if item and item.strip()]
    return sep.join(values) if values else "n/a"


def _or_na(value: Optional[str]) -> str:
    return value.strip() if value and value.strip() else "n/a"


def build_posting_prompt(
    title: str,
    seniority: Optional[str] = None,
    team: Optional[str] = None,
    location: Optional[str] = None,
    remote_policy: Optional[str] = None,
    must_have_skills: Optional[Iterable[str]] = None,
    nice_to_have_skills: Optional[Iterable[str]] = None,
    responsibilities: Optional[Iterable[str]] = None,
    requirements: Optional[Iterable[str]] = None,
    benefits: Optional[Iterable[str]] = None,
) -> str:
    """User prompt describing the role to advertise."""
    return f"""Create a well-formatted job posting with these details:

Job Details:
- Title: {title.strip()}
- Seniority: {_or_na(seniority)}
- Team: {_or_na(team)}
- Location: {_or_na(location)} ({_or_na(remote_policy)})

Skills Required:
- Must-have: {_join(must_have_skills, ", ")}
- Nice-to-have: {_join(nice_to_have_skills, ", ")}

Additional Information:
- Key Responsibilities: {_join(responsibilities, "; ")}
- Requirements: {_join(requirements, "; ")}
- Benefits: {_join(benefits, "; ")}

Format the response as a modern, well-spaced job posting with:
1. A clear header section with job title, location, and team
2. An "About the Role" section with an engaging overview paragraph
3. A "Responsibilities" section with well-formatted bullet points
4. A "Requirements" section with separate Must-have and Nice-to-have subsections
5. A "Benefits" section with attractive bullet points
6. End with an equal opportunity statement and privacy notice

Use proper HTML tags with spacing classes as specified in the system message."""


def is_senior(seniority: Optional[str]) -> bool:
    return bool(seniority) and "senior" in seniority.lower()


def build_kit_prompt(role_title: str, seniority: Optional[str] = None) -> str:
    """User prompt asking for three questions per category for ``role_title``."""
    role = role_title.strip()
    if is_senior(seniority):
        expectations = "Include advanced system design and architecture questions."
    else:
        expectations = "Focus on practical implementation and problem-solving questions."

    return f"""Generate specific interview questions for a {role} position.

Generate exactly 3 questions for each category, ensuring they are highly specific to the {role} role:

Technical Questions:
- Focus on technical skills and knowledge specific to the {role} role.
- {expectations}
- Must directly test {role}-specific skills

Behavioral Questions:
- Real situations a {role} faces daily
- Team collaboration scenarios
- Project challenges specific to {role} work

Scenario Questions:
- Technical challenges specific to {role} work
- System design/debugging scenarios
- Architecture decisions a {role} makes

Answer with the JSON object only."""
