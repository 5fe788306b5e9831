"""Canonical structured CV record extracted from an uploaded resume."""

from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _as_text(value: Any) -> str:
    """Coerce an LLM-provided scalar, list or mapping into a display string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(_as_text(v) for v in value if v is not None and _as_text(v))
    if isinstance(value, dict):
        return "; ".join(f"{k}: {_as_text(v)}" for k, v in value.items() if v not in (None, ""))
    return str(value)


class _Entry(BaseModel):
    """List entry with string fields; keeps any extra keys the model emits."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _coerce_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for field in cls.model_fields.values():
            key = field.alias
            if key in out:
                out[key] = _as_text(out[key])
        return out


class EducationEntry(_Entry):
    institution: str = Field(default="", alias="Institution")
    degree: str = Field(default="", alias="Degree")
    field_of_study: str = Field(default="", alias="FieldOfStudy")
    dates: str = Field(default="", alias="Dates")


class WorkExperienceEntry(_Entry):
    job_title: str = Field(default="", alias="JobTitle")
    company: str = Field(default="", alias="Company")
    duration: str = Field(default="", alias="Duration")
    description: str = Field(default="", alias="Description")


class LanguageEntry(_Entry):
    language: str = Field(default="", alias="Language")
    proficiency: str = Field(default="", alias="Proficiency")


class ProjectEntry(_Entry):
    name: str = Field(default="", alias="name")
    description: str = Field(default="", alias="description")


_STRING_FIELDS = ("Name", "Summary")
_LIST_FIELDS = (
    "Education",
    "WorkExperience",
    "Skills",
    "Certifications",
    "Languages",
    "Projects",
    "Achievements",
)
_ENTRY_FIELDS = ("Education", "WorkExperience", "Languages", "Projects")


class CandidateRecord(BaseModel):
    """Structured CV data produced by the pipeline. Missing fields are '' or [], never null."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = Field(default="", alias="Name", description="Full name of the candidate")
    contact_information: Union[Dict[str, Any], str] = Field(
        default="", alias="ContactInformation", description="Email, phone, address, links"
    )
    summary: str = Field(default="", alias="Summary", description="Professional summary or objective")
    education: List[Union[EducationEntry, str]] = Field(default_factory=list, alias="Education")
    work_experience: List[Union[WorkExperienceEntry, str]] = Field(
        default_factory=list, alias="WorkExperience"
    )
    skills: List[str] = Field(default_factory=list, alias="Skills", description="Flat list of skills")
    certifications: List[str] = Field(default_factory=list, alias="Certifications")
    languages: List[Union[LanguageEntry, str]] = Field(default_factory=list, alias="Languages")
    projects: List[Union[ProjectEntry, str]] = Field(default_factory=list, alias="Projects")
    achievements: List[str] = Field(default_factory=list, alias="Achievements")
    other_details: Union[str, List[Any]] = Field(default="", alias="OtherDetails")

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        """Replace null fields with empty values and wrap single items into lists."""
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for key in _STRING_FIELDS:
            out[key] = _as_text(out.get(key))
        for key in _LIST_FIELDS:
            value = out.get(key)
            if value is None or value == "":
                value = []
            elif isinstance(value, (str, dict)):
                value = [value]
            elif isinstance(value, tuple):
                value = list(value)
            if isinstance(value, list) and key in _ENTRY_FIELDS:
                value = [v if isinstance(v, (dict, str)) else _as_text(v) for v in value if v is not None]
            out[key] = value
        contact = out.get("ContactInformation")
        if not isinstance(contact, dict):
            out["ContactInformation"] = _as_text(contact)
        other = out.get("OtherDetails")
        if not isinstance(other, list):
            out["OtherDetails"] = _as_text(other)
        return out

    @field_validator("skills", "certifications", "achievements", mode="before")
    @classmethod
    def _string_items(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_as_text(v) for v in value if v is not None and _as_text(v).strip()]
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the canonical JSON keys (Name, WorkExperience, ...)."""
        return self.model_dump(by_alias=True, mode="json")
