"""Request and response models for the generation API."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

TITLE_MAX_LENGTH = 200
SHORT_FIELD_MAX_LENGTH = 100

KIT_CATEGORIES = ("technical", "behavioral", "scenario")


def _require_title(value: Optional[str], label: str) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} is required")
    if len(value) > TITLE_MAX_LENGTH:
        raise ValueError(f"{label} must be at most {TITLE_MAX_LENGTH} characters")
    return value.strip()


def _as_list(value: Any, label: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{label} must be an array")
    return value


class PostingRequest(BaseModel):
    """Role attributes for a job posting."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = Field(default=None, validate_default=True)
    seniority: Optional[str] = None
    team: Optional[str] = None
    location: Optional[str] = None
    remote_policy: Optional[str] = Field(default=None, alias="remotePolicy")
    must_have_skills: list[str] = Field(default_factory=list, alias="mustHaveSkills")
    nice_to_have_skills: list[str] = Field(default_factory=list, alias="niceToHaveSkills")
    responsibilities: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        return _require_title(v, "Job title")

    @field_validator("team", "location")
    @classmethod
    def validate_short_fields(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is not None and len(v) > SHORT_FIELD_MAX_LENGTH:
            label = "Team name" if info.field_name == "team" else "Location"
            raise ValueError(f"{label} must be at most {SHORT_FIELD_MAX_LENGTH} characters")
        return v

    @field_validator(
        "must_have_skills",
        "nice_to_have_skills",
        "responsibilities",
        "requirements",
        "benefits",
        mode="before",
    )
    @classmethod
    def validate_lists(cls, v: Any, info: ValidationInfo) -> list:
        label = info.field_name.replace("_", " ").capitalize()
        return _as_list(v, label)


class KitRequest(BaseModel):
    """Role for which to generate an interview kit."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    role_title: Optional[str] = Field(default=None, alias="roleTitle", validate_default=True)
    seniority: Optional[str] = None

    @field_validator("role_title")
    @classmethod
    def validate_role_title(cls, v: Optional[str]) -> str:
        return _require_title(v, "Role title")


class QA(BaseModel):
    q: str
    a: str = ""


class InterviewKit(BaseModel):
    technical: list[QA] = Field(default_factory=list)
    behavioral: list[QA] = Field(default_factory=list)
    scenario: list[QA] = Field(default_factory=list)

    @classmethod
    def from_structured(cls, value: Any) -> "InterviewKit":
        """Normalize an extracted model answer into a kit.

        Unknown keys are ignored, malformed entries are skipped, and a value
        that is not an object gives the empty kit.
        """
        if not isinstance(value, dict):
            return cls()

        categories: dict[str, list[QA]] = {}
        for name in KIT_CATEGORIES:
            entries = value.get(name)
            items: list[QA] = []
            if isinstance(entries, list):
                for entry in entries:
                    qa = _coerce_qa(entry)
                    if qa is not None:
                        items.append(qa)
            categories[name] = items
        return cls(**categories)

    @property
    def is_empty(self) -> bool:
        return not (self.technical or self.behavioral or self.scenario)


def _coerce_qa(entry: Any) -> Optional[QA]:
    if not isinstance(entry, dict):
        return None
    question = entry.get("q", entry.get("question"))
    answer = entry.get("a", entry.get("answer", ""))
    if not isinstance(question, str) or not question.strip():
        return None
    if not isinstance(answer, str):
        answer = "" if answer is None else str(answer)
    return QA(q=question.strip(), a=answer.strip())


class PostingResponse(BaseModel):
    ok: bool = True
    html: str


class KitResponse(BaseModel):
    kit: InterviewKit


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[list[str]] = None
    request_id: Optional[str] = None
