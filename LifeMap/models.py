from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator
from pydantic.alias_generators import to_camel

from LifeMap.dates import sanitize_date_input

# Choices offered by the entry form. Any other string is still a valid value.
CATEGORIES = ("대외활동", "공모전", "아르바이트", "교내활동", "성적")
EMOTIONS = ("즐거움", "당황", "두려움", "익숙함")
# Selecting this value means "use the accompanying free-text field".
CUSTOM_CHOICE = "custom"


class _CamelModel(BaseModel):
    # Persisted blobs use camelCase keys.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Attachment(_CamelModel):
    id: str
    name: str
    mime_type: str = Field(default="application/octet-stream", alias="type")
    data: str = Field(description="Base64-encoded file payload")


class Experience(_CamelModel):
    """
    A single recorded life experience in canonical shape.

    Legacy fields (``date``, ``energyLevel``) never reach this model; they are
    folded into ``start_date``/``end_date``/``satisfaction`` when loading.
    """
    id: str
    title: str
    start_date: str = Field(default="", description="YYYY.MM.DD")
    end_date: str = Field(default="", description="YYYY.MM.DD")
    description: str
    category: str = ""
    satisfaction: int = Field(default=5, ge=1, le=10)
    emotion: str = ""
    tags: List[str] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    deleted_at: Optional[datetime] = Field(default=None, description="Set while the record is in the trash")

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None


class ExperienceList(RootModel[List[Experience]]):
    root: List[Experience]

    def __iter__(self):
        return iter(self.root)

    def __len__(self):
        return len(self.root)


class ExperienceDraft(_CamelModel):
    """Editable fields of an experience as captured by a form or an import."""
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    category: Optional[str] = None
    custom_category: Optional[str] = None
    emotion: Optional[str] = None
    custom_emotion: Optional[str] = None
    satisfaction: Optional[int] = Field(default=None, ge=1, le=10)
    tags: Optional[List[str]] = None
    attachments: Optional[List[Attachment]] = None

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def sanitize_dates(cls, v):
        if isinstance(v, str):
            return sanitize_date_input(v)
        return v


class UserProfile(_CamelModel):
    name: str = Field(min_length=1)
    birth_year: int
    status: str = Field(min_length=1)


class ExperienceRelationship(_CamelModel):
    source_id: str
    target_id: str
    reason: str = ""


class AnalysisResult(_CamelModel):
    strengths: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    problem_solving_style: str = ""
    energy_direction: str = ""
    action_plan: List[str] = Field(default_factory=list)
    summary: str = ""
    relationships: List[ExperienceRelationship] = Field(default_factory=list)


class ExtractedExperience(_CamelModel):
    """Candidate record returned by file/URL extraction. Every field is optional."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')

    title: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None

    @field_validator('title', 'start_date', 'end_date', 'description', 'category', mode='before')
    @classmethod
    def coerce_to_text(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)


class ExtractionResponse(RootModel[List[ExtractedExperience]]):
    root: List[ExtractedExperience]

    def __iter__(self):
        return iter(self.root)

    def __len__(self):
        return len(self.root)
