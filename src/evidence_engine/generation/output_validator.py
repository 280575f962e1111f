"""Hard citation-integrity validation plus the best-effort self-healing pass."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from evidence_engine.exceptions import CitationIntegrityError, StructuralOutputError
from evidence_engine.generation.output_models import (
    USAGE_TYPES,
    GenerationOutput,
    OutputCitation,
    OutputParagraph,
)
from evidence_engine.models.domain import EvidenceUnit
from evidence_engine.observability.logger import get_logger

logger = get_logger("output_validator")

SYNTHESIZED_SPAN_CHARS = 100


@dataclass
class ValidatedOutput:
    output: GenerationOutput
    warnings: list[str] = field(default_factory=list)
    synthesized_citations: int = 0


class OutputValidator:
    def validate(
        self, output: GenerationOutput, working_set: Sequence[EvidenceUnit]
    ) -> ValidatedOutput:
        """Reject any citation-integrity violation, then fill missing citations.

        The input is not mutated; the healed document is a deep copy.
        """
        texts = {u.id: u.text for u in working_set}
        healed = output.model_copy(deep=True)
        result = ValidatedOutput(output=healed)

        paragraphs = list(healed.iter_paragraphs())
        if not paragraphs:
            raise StructuralOutputError("Generated document has no paragraphs")

        for section, paragraph in paragraphs:
            where = f"section {section.section_index} paragraph {paragraph.paragraph_index}"
            self._check_paragraph(paragraph, texts, where, result)

        for _, paragraph in paragraphs:
            result.synthesized_citations += self._heal(paragraph, texts)

        if result.synthesized_citations:
            logger.warning(
                "citations_synthesized", count=result.synthesized_citations
            )
        logger.info(
            "output_validated",
            sections=len(healed.sections),
            paragraphs=len(paragraphs),
            citations=healed.citation_count,
            warnings=len(result.warnings),
        )
        return result

    def _check_paragraph(
        self,
        paragraph: OutputParagraph,
        texts: dict[str, str],
        where: str,
        result: ValidatedOutput,
    ) -> None:
        if not paragraph.evidence_ids:
            raise CitationIntegrityError(f"Paragraph without evidence citation ({where})")

        for eid in paragraph.evidence_ids:
            if eid not in texts:
                raise CitationIntegrityError(f"Model cited unknown evidence ID {eid!r} ({where})")

        for citation in paragraph.citations or []:
            if citation.evidence_id not in texts:
                raise CitationIntegrityError(
                    f"Citation references invalid evidence ID {citation.evidence_id!r} ({where})"
                )
            if citation.usage_type not in USAGE_TYPES:
                raise CitationIntegrityError(
                    f"Invalid usage_type {citation.usage_type!r} in citation ({where})"
                )
            self._check_positions(citation, texts[citation.evidence_id], result)
            if citation.usage_type == "direct" and not citation.quoted_text:
                result.warnings.append(f"direct citation of {citation.evidence_id} has no quoted_text")
                logger.warning("missing_quoted_text", evidence_id=citation.evidence_id)

    @staticmethod
    def _check_positions(
        citation: OutputCitation, text: str, result: ValidatedOutput
    ) -> None:
        start, end = citation.char_start, citation.char_end
        if start is None or end is None:
            return
        if start < 0 or end > len(text) or start > end:
            result.warnings.append(
                f"citation span {start}:{end} out of range for {citation.evidence_id}"
            )
            logger.warning(
                "citation_position_out_of_range",
                evidence_id=citation.evidence_id,
                char_start=start,
                char_end=end,
                unit_length=len(text),
            )

    @staticmethod
    def _heal(paragraph: OutputParagraph, texts: dict[str, str]) -> int:
        if paragraph.citations is None:
            paragraph.citations = []
        cited = {c.evidence_id for c in paragraph.citations}
        added = 0
        for eid in paragraph.evidence_ids:
            if eid in cited:
                continue
            paragraph.citations.append(
                OutputCitation(
                    evidence_id=eid,
                    usage_type="reference",
                    char_start=0,
                    char_end=min(SYNTHESIZED_SPAN_CHARS, len(texts[eid])),
                )
            )
            cited.add(eid)
            added += 1
        return added
