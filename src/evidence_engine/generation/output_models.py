"""Pydantic models for the structured document returned by the generation service."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

USAGE_TYPES = ("direct", "substantial", "reference")


class OutputCitation(BaseModel):
    model_config = ConfigDict(extra="allow")

    evidence_id: str = ""
    # Checked against USAGE_TYPES by the validator, not here, so that an
    # unknown value surfaces as a citation integrity failure.
    usage_type: str = ""
    char_start: int | None = None
    char_end: int | None = None
    quoted_text: str | None = None
    excerpt: str | None = None


class OutputParagraph(BaseModel):
    model_config = ConfigDict(extra="allow")

    paragraph_index: int | None = None
    text: str = ""
    evidence_ids: list[str] = Field(default_factory=list)
    citations: list[OutputCitation] | None = None


class OutputSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    section_index: int | None = None
    title: str = ""
    paragraphs: list[OutputParagraph] = Field(default_factory=list)


class GenerationOutput(BaseModel):
    model_config = ConfigDict(extra="allow")

    sections: list[OutputSection] = Field(default_factory=list)

    def iter_paragraphs(self):
        for section in self.sections:
            for paragraph in section.paragraphs:
                yield section, paragraph

    @property
    def citation_count(self) -> int:
        return sum(len(p.citations or []) for _, p in self.iter_paragraphs())
