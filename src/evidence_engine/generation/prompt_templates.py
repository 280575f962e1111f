"""Prompt templates and formatting helpers for document generation and synthesis."""

from __future__ import annotations

import math
import re
from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from evidence_engine.config.constants import WORD_LIMIT_PATTERN
from evidence_engine.exceptions import InputError
from evidence_engine.models.domain import EvidenceUnit, SourceRecord
from evidence_engine.models.schemas import Approach, ArgumentationLine, SectionPlan
from evidence_engine.models.source_types import label_for

REASONING_SYSTEM = """You are a constrained legal-reasoning engine in an audit-critical research system.
All evidence has already been retrieved, ranked and fixed. You MUST NOT retrieve, guess,
supplement, or explain background beyond the provided evidence."""

REASONING_PROMPT = """{system}

{document_context}{source_context}{approach_context}
CORE CONSTRAINTS
- Rely ONLY on the evidence units below. No prior knowledge, no invented facts or citations.
- Every paragraph MUST advance an analytical claim and cite at least one evidence ID.
- Evidence IDs MUST be copied EXACTLY from the bracketed IDs below.
- Output MUST be valid JSON matching the schema and nothing else.

SOURCE AUTHORITY
- Primary authority (cases, statutes, regulations, constitutions, treaties) establishes legal
  propositions. When present it MUST be integrated early and cited often.
- Academic sources provide interpretation and critique; institutional sources provide policy
  context; informal sources are used sparingly.
- Units marked as part of a sequence are adjacent extracts of one provision. Read them together.

STRUCTURE
{structure}

QUERY
{query}

EVIDENCE (READ-ONLY)
{evidence_block}

CITATIONS
- usage_type "direct": verbatim quote. quoted_text MUST hold the exact quote.
- usage_type "substantial": paraphrase or summary. excerpt holds the key phrase.
- usage_type "reference": the unit informs the argument without being quoted.
- char_start/char_end are 0-indexed positions within the cited unit's content.
- Every ID in "evidence_ids" MUST have at least one entry in "citations".
- Use the "Citation Abbrev" for inline references such as [Smith, p. 4].

OUTPUT FORMAT (JSON ONLY)
{schema}"""

OUTPUT_SCHEMA = """{
  "sections": [
    {
      "section_index": 1,
      "title": "Section title",
      "paragraphs": [
        {
          "paragraph_index": 1,
          "text": "Prose with inline citations [Abbrev, p. 1]",
          "evidence_ids": ["<evidence-id>"],
          "citations": [
            {
              "evidence_id": "<evidence-id>",
              "usage_type": "direct" | "substantial" | "reference",
              "char_start": 0,
              "char_end": 50,
              "quoted_text": "exact quote when direct, otherwise null",
              "excerpt": "key phrase when substantial, otherwise null"
            }
          ]
        }
      ]
    }
  ]
}"""

DOCUMENT_TYPES: dict[str, str] = {
    "research_paper": "Academic research paper with comprehensive analysis, theoretical grounding and scholarly rigor",
    "literature_review": "Review synthesizing existing scholarship, identifying gaps and positioning contributions",
    "systematic_review": "Systematic review following methodological protocols and rigorous review standards",
    "empirical_study": "Research paper based on empirical data, statistical analysis and evidence-based conclusions",
    "theoretical_paper": "Paper focused on theoretical frameworks and conceptual analysis",
    "legal_brief": "Formal legal brief or memorandum with clear legal arguments, case citations and structured analysis",
    "motion_brief": "Brief supporting or opposing a motion, with focused legal arguments and case law",
    "appellate_brief": "Brief for appellate proceedings, emphasizing legal errors and precedent",
    "legal_memorandum": "Internal legal memorandum analyzing legal issues, risks and recommendations",
    "client_opinion": "Opinion letter advising a client on legal matters and their implications",
    "case_analysis": "Case law analysis focusing on judicial reasoning, precedent and doctrinal development",
    "case_note": "Brief analysis of a specific case, highlighting key legal principles",
    "case_comment": "Critical commentary on a judicial decision and its potential impact",
    "comparative_case_study": "Comparative analysis across cases or jurisdictions, identifying patterns and differences",
    "policy_analysis": "Policy evaluation examining implications, alternatives and recommendations",
    "law_reform_paper": "Paper proposing legal reforms with policy recommendations and implementation strategies",
    "regulatory_analysis": "Analysis of regulatory frameworks, compliance requirements and regulatory impact",
    "impact_assessment": "Assessment of legal or policy impacts, evaluating effectiveness and consequences",
    "thesis": "Extended academic work with deep analysis and original contributions",
    "dissertation": "Doctoral-level research work with original research and significant contributions",
    "masters_thesis": "Master's level research work with comprehensive analysis and original insights",
    "capstone_project": "Capstone project integrating coursework and research",
    "journal_article": "Article for an academic or legal journal with focused argumentation",
    "law_review_article": "Law review article with rigorous legal analysis and scholarly contribution",
    "opinion_piece": "Opinion piece or editorial with persuasive argumentation and a clear position",
    "book_chapter": "Chapter for an edited volume or monograph",
    "practice_guide": "Guide for legal practitioners with practical advice and procedural guidance",
    "compliance_manual": "Manual for regulatory compliance with step-by-step procedures and requirements",
    "training_material": "Educational or training material with clear explanations and practical examples",
    "other": "Custom research output with flexible structure and approach",
}
DEFAULT_DOCUMENT_TYPE = "research_paper"

PRIMARY_LAW_TYPES = frozenset({"statute", "treaty", "regulation", "constitution"})

DEFAULT_MIN_SECTIONS = 6
DEFAULT_MIN_PARAGRAPHS = 3
DEFAULT_MIN_WORDS = 90
DEFAULT_MAX_WORDS = 130
DEFAULT_TOTAL_WORDS = DEFAULT_MIN_SECTIONS * DEFAULT_MIN_PARAGRAPHS * DEFAULT_MAX_WORDS
AVG_WORDS_PER_PARAGRAPH = 110

_WORD_LIMIT_RE = re.compile(WORD_LIMIT_PATTERN, re.IGNORECASE)
_AUTHOR_YEAR_RE = re.compile(r"^([^,]+),\s*(\d{4})")
_STATUTE_SUFFIX_RE = re.compile(r"\s+(Act|Code|Law)$", re.IGNORECASE)


@dataclass(frozen=True)
class DocumentPlan:
    min_sections: int
    min_paragraphs_per_section: int
    min_words_per_paragraph: int
    max_words_per_paragraph: int
    target_words: int
    word_limit: int | None = None

    @property
    def is_extended(self) -> bool:
        return self.word_limit is not None and self.word_limit > DEFAULT_TOTAL_WORDS

    @property
    def is_concise(self) -> bool:
        return self.word_limit is not None and self.word_limit < DEFAULT_TOTAL_WORDS


def detect_word_limit(query: str, max_word_limit: int = 5000) -> int | None:
    """Find an explicit word count such as "up to 4000 words" in the query."""
    match = _WORD_LIMIT_RE.search(query)
    if not match:
        return None
    requested = int(match.group(1))
    if 0 < requested <= max_word_limit:
        return requested
    return None


def plan_document(word_limit: int | None, max_word_limit: int = 5000) -> DocumentPlan:
    if word_limit is None:
        return DocumentPlan(
            DEFAULT_MIN_SECTIONS,
            DEFAULT_MIN_PARAGRAPHS,
            DEFAULT_MIN_WORDS,
            DEFAULT_MAX_WORDS,
            DEFAULT_TOTAL_WORDS,
        )

    limit = min(word_limit, max_word_limit)
    paragraphs = math.ceil(limit / AVG_WORDS_PER_PARAGRAPH)
    if limit > DEFAULT_TOTAL_WORDS:
        sections = max(DEFAULT_MIN_SECTIONS, math.ceil(paragraphs / 4))
        per_section = max(DEFAULT_MIN_PARAGRAPHS, paragraphs // sections)
        return DocumentPlan(sections, per_section, 85, 150, limit, limit)
    if limit < DEFAULT_TOTAL_WORDS:
        sections = max(2, min(4, math.ceil(paragraphs / 3)))
        per_section = max(2, paragraphs // sections)
        return DocumentPlan(sections, per_section, 60, 120, limit, limit)
    return DocumentPlan(
        DEFAULT_MIN_SECTIONS,
        DEFAULT_MIN_PARAGRAPHS,
        DEFAULT_MIN_WORDS,
        DEFAULT_MAX_WORDS,
        limit,
        limit,
    )


def citation_abbreviation(source: SourceRecord) -> str:
    """Short inline-citation form of a source title."""
    title = source.title
    if source.source_type == "case":
        return title.split(" v. ")[0] or title[:30]
    if source.source_type == "statute":
        return _STATUTE_SUFFIX_RE.sub("", title)[:30]
    if source.source_type in ("treaty", "constitution"):
        return title[:40]
    if source.source_type in ("journal_article", "book", "commentary"):
        match = _AUTHOR_YEAR_RE.match(title)
        if match:
            return f"{match.group(1)}, {match.group(2)}"
    return title[:30]


def format_document_context(document_type: str | None) -> str:
    """Describe the kind of document being produced. Unknown types read as a research paper."""
    if document_type is None:
        return ""
    description = DOCUMENT_TYPES.get(document_type, DOCUMENT_TYPES[DEFAULT_DOCUMENT_TYPE])
    return f"DOCUMENT TYPE: {description}\n"


def format_source_context(
    units: Sequence[EvidenceUnit], sources: Mapping[str, SourceRecord]
) -> str:
    used = [sources[sid] for sid in dict.fromkeys(u.source_id for u in units) if sid in sources]
    if not used:
        return ""
    counts: dict[str, int] = defaultdict(int)
    for source in used:
        counts[source.source_type] += 1
    lines = ["SOURCE TYPES AVAILABLE:"]
    lines += [f"- {label_for(t)}: {n} source(s)" for t, n in counts.items()]
    lines.append("SOURCE DETAILS:")
    lines += [f"- {s.title} ({label_for(s.source_type)})" for s in used]
    return "\n".join(lines) + "\n"


def format_evidence_block(
    units: Sequence[EvidenceUnit], sources: Mapping[str, SourceRecord]
) -> str:
    """Enumerate evidence by id with its source metadata and adjacency notes."""
    per_source: dict[str, int] = defaultdict(int)
    for unit in units:
        per_source[unit.source_id] += 1

    blocks = []
    for unit in units:
        source = sources.get(unit.source_id)
        label = label_for(unit.source_type)
        lines = [
            f"[{unit.id}]",
            f"Source ID: {unit.source_id}",
            f"Source Type: {label}",
            f"Source Title: {source.title if source else 'Unknown'}",
            f"Citation Abbrev: {citation_abbreviation(source) if source else label}",
            f"Page Number: {unit.page_number}",
            f"Paragraph Index: {unit.paragraph_index}",
            f"Sequence Index: {unit.sequence_index}",
        ]
        if unit.source_type in PRIMARY_LAW_TYPES and per_source[unit.source_id] > 1:
            lines.append(
                f"NOTE: Part of a sequence from this {label}. Read it together with "
                "adjacent units from the same source."
            )
        if unit.is_expanded_context:
            lines.append("NOTE: Included as surrounding context for a neighbouring unit.")
        lines += ["Content:", unit.text.strip()]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def _format_sections(plans: Sequence[SectionPlan]) -> str:
    return "\n  ".join(f"{s.section_index}. {s.title} - {s.description}" for s in plans)


def _format_line(line: ArgumentationLine) -> list[str]:
    return [
        f"- Title: {line.title}",
        f"- Description: {line.description}",
        f"- Method: {line.approach}",
        f"- Focus Areas: {', '.join(line.focus_areas)}",
        f"- Tone: {line.tone}",
    ]


def format_approach_context(approach: Approach | None) -> str:
    if approach is None:
        return ""

    if len(approach.combined_lines) > 1:
        lines = approach.combined_lines
        out = [
            "COMBINED ARGUMENTATION APPROACH:",
            f"Synthesize {len(lines)} complementary argumentation strategies into one argument.",
        ]
        for n, line in enumerate(lines, 1):
            out.append(f"APPROACH {n}:")
            out += _format_line(line)
        focus = dict.fromkeys(a for line in lines for a in line.focus_areas)
        out.append(f"Address all combined focus areas: {', '.join(focus)}")
        plans = approach.sections or lines[0].structure.sections
        if plans:
            out.append(f"PROPOSED STRUCTURE:\n  {_format_sections(plans)}")
        return "\n".join(out) + "\n"

    if approach.argumentation_line is not None:
        line = approach.argumentation_line
        out = ["SELECTED ARGUMENTATION APPROACH:"] + _format_line(line)
        if line.structure.sections:
            out.append(f"- Proposed Structure:\n  {_format_sections(line.structure.sections)}")
        return "\n".join(out) + "\n"

    out = [
        "SELECTED APPROACH CONFIGURATION:",
        f"- Tone: {approach.tone or 'analytical'}",
        f"- Structure Type: {approach.structure_type or 'traditional'}",
        f"- Focus Areas: {', '.join(approach.focus_areas) or 'general analysis'}",
    ]
    if approach.sections:
        out.append(f"- Custom Sections:\n  {_format_sections(approach.sections)}")
    return "\n".join(out) + "\n"


def format_structure(plan: DocumentPlan, approach: Approach | None = None) -> str:
    lines = []
    if plan.word_limit is not None:
        lines.append(f"- TARGET WORD COUNT: approximately {plan.target_words:,} words total.")

    fixed_sections = None
    if plan.word_limit is None and approach is not None:
        if approach.argumentation_line is not None and approach.argumentation_line.structure.sections:
            fixed_sections = len(approach.argumentation_line.structure.sections)
        elif approach.sections:
            fixed_sections = len(approach.sections)

    if fixed_sections:
        lines.append(f"- Follow the proposed structure with {fixed_sections} sections.")
    else:
        lines.append(f"- Produce AT LEAST {plan.min_sections} sections.")
    lines.append(f"- Each section MUST contain AT LEAST {plan.min_paragraphs_per_section} paragraphs.")
    lines.append(
        f"- Each paragraph MUST be between {plan.min_words_per_paragraph} and "
        f"{plan.max_words_per_paragraph} words."
    )
    if plan.is_concise:
        lines.append("- This is a concise analysis: keep to the most essential arguments.")
    elif plan.is_extended:
        lines.append("- This is an extended analysis: develop every argument fully.")
    return "\n".join(lines)


def build_reasoning_prompt(
    query: str,
    units: Sequence[EvidenceUnit],
    sources: Mapping[str, SourceRecord],
    approach: Approach | None = None,
    plan: DocumentPlan | None = None,
    document_type: str | None = None,
) -> str:
    if not units:
        raise InputError("No evidence units provided")
    plan = plan or plan_document(None)
    return REASONING_PROMPT.format(
        system=REASONING_SYSTEM,
        document_context=format_document_context(document_type),
        source_context=format_source_context(units, sources),
        approach_context=format_approach_context(approach),
        structure=format_structure(plan, approach),
        query=query,
        evidence_block=format_evidence_block(units, sources),
        schema=OUTPUT_SCHEMA,
    )


SYNTHESIS_SYSTEM = """You are an expert legal and academic research strategist. You propose how a
document could be argued from a fixed body of retrieved evidence. You do not write the document."""

SYNTHESIS_PROMPT = """{system}

CONTEXT
- Document Type: {document_type}
- Query: {query}

EVIDENCE SUMMARY
- Total units retrieved: {unit_count}
- Sources represented: {source_count}
{source_context}
KEY EXCERPTS
{excerpts}

TASK
Propose 3-4 distinct argumentation lines for this query. Each line needs a short title, a
two or three sentence description, a section structure of 4-6 sections with a title and a
description each, an analytical approach, 3-5 focus areas and a tone. Then recommend a default
structure and list personalization options for tone, structure and focus.
Ground every line in the evidence summarized above.

OUTPUT FORMAT (JSON ONLY)
{schema}"""

SYNTHESIS_SCHEMA = """{
  "argumentation_lines": [
    {
      "id": "line_1",
      "title": "Line title",
      "description": "How the argument proceeds",
      "structure": {
        "sections": [
          {"section_index": 1, "title": "Section title", "description": "Section purpose"}
        ]
      },
      "approach": "doctrinal" | "comparative" | "critical" | "policy",
      "focus_areas": ["focus area"],
      "tone": "analytical" | "persuasive" | "critical" | "neutral"
    }
  ],
  "recommended_structure": {
    "type": "traditional",
    "description": "Why this structure suits the query",
    "sections": [
      {"section_index": 1, "title": "Section title", "description": "Section purpose"}
    ]
  },
  "personalization_options": {
    "tone_options": [{"value": "analytical", "label": "Analytical", "description": ""}],
    "structure_options": [{"value": "traditional", "label": "Traditional", "description": ""}],
    "focus_options": [{"value": "focus", "label": "Focus", "description": ""}]
  }
}"""


def format_excerpts(units: Sequence[EvidenceUnit], limit: int = 20, chars: int = 200) -> str:
    lines = []
    for n, unit in enumerate(units[:limit], 1):
        text = unit.text.strip()
        if len(text) > chars:
            text = text[:chars] + "..."
        lines.append(f"[{n}] ({label_for(unit.source_type)}) {text}")
    return "\n".join(lines)


def build_synthesis_prompt(
    query: str,
    units: Sequence[EvidenceUnit],
    sources: Mapping[str, SourceRecord],
    document_type: str | None = None,
    excerpt_units: int = 20,
    excerpt_chars: int = 200,
) -> str:
    """Prompt asking for candidate argumentation lines over ranked evidence."""
    if not units:
        raise InputError("No evidence units provided")
    doc_type = document_type if document_type in DOCUMENT_TYPES else DEFAULT_DOCUMENT_TYPE
    return SYNTHESIS_PROMPT.format(
        system=SYNTHESIS_SYSTEM,
        document_type=f"{doc_type} ({DOCUMENT_TYPES[doc_type]})",
        query=query,
        unit_count=len(units),
        source_count=len({u.source_id for u in units}),
        source_context=format_source_context(units, sources),
        excerpts=format_excerpts(units, excerpt_units, excerpt_chars),
        schema=SYNTHESIS_SCHEMA,
    )
