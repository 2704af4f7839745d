from typing import Any, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from app.schemas.ticket import PriorityEnum


class ClassifierResult(BaseModel):
    """
    Raw classifier reply. Lenient on purpose: anything malformed is dropped
    here and filled with defaults during normalization.
    """
    priority: Optional[str] = None
    helpful_notes: Optional[str] = Field(
        None, validation_alias=AliasChoices("helpful_notes", "helpfulNotes", "notes")
    )
    related_skills: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("related_skills", "relatedSkills", "skills"),
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("priority", "helpful_notes", mode="before")
    @classmethod
    def drop_non_strings(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("related_skills", mode="before")
    @classmethod
    def coerce_skills(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            return []
        return [skill for skill in value if isinstance(skill, str)]


class Classification(BaseModel):
    """Normalized classification, ready to be persisted on the ticket."""
    priority: PriorityEnum = PriorityEnum.MEDIUM
    helpful_notes: str = ""
    related_skills: List[str] = Field(default_factory=list)
