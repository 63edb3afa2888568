from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ExperienceEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    company: str | None = None
    title: str | None = None
    location: str | None = None
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")
    description: str | None = None


class EducationEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    school: str | None = None
    degree: str | None = None
    field: str | None = None
    start_year: str | None = Field(default=None, alias="startYear")
    end_year: str | None = Field(default=None, alias="endYear")


class ParsedDocument(BaseModel):
    """Normalized resume content.

    ``raw_text`` is always present. An empty string is the fallback signal: the
    document could not be read and every structured field is empty too.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    raw_text: str = Field(default="", alias="rawText")
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    summary: str | None = None
    skills: list[str] = Field(default_factory=list)
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    parsing_warnings: list[str] = Field(default_factory=list, exclude=True)

    @property
    def is_fallback(self) -> bool:
        return not self.raw_text

    def truncated(self, max_chars: int) -> "ParsedDocument":
        if len(self.raw_text) <= max_chars:
            return self
        return self.model_copy(update={"raw_text": self.raw_text[:max_chars]})

    def to_transport(self, max_chars: int) -> dict:
        return self.truncated(max_chars).model_dump(by_alias=True, exclude_none=True)


def empty_document(*warnings: str) -> ParsedDocument:
    return ParsedDocument(raw_text="", parsing_warnings=list(warnings))
