"""Tests for citation-integrity validation and citation healing."""

import pytest

from conftest import make_unit
from evidence_engine.exceptions import CitationIntegrityError, StructuralOutputError
from evidence_engine.generation.output_models import GenerationOutput
from evidence_engine.generation.output_validator import OutputValidator


@pytest.fixture
def working_set():
    return [make_unit("e1", length=300), make_unit("e2", source_id="s2", length=50)]


def _output(paragraphs: list[dict]) -> GenerationOutput:
    return GenerationOutput.model_validate(
        {"sections": [{"section_index": 1, "title": "A", "paragraphs": paragraphs}]}
    )


def test_valid_document_passes(working_set):
    output = _output(
        [
            {
                "paragraph_index": 1,
                "text": "x",
                "evidence_ids": ["e1"],
                "citations": [{"evidence_id": "e1", "usage_type": "substantial"}],
            }
        ]
    )
    result = OutputValidator().validate(output, working_set)
    assert result.warnings == []
    assert result.synthesized_citations == 0


def test_empty_document_rejected(working_set):
    with pytest.raises(StructuralOutputError):
        OutputValidator().validate(GenerationOutput(), working_set)


def test_paragraph_without_evidence_rejected(working_set):
    with pytest.raises(CitationIntegrityError):
        OutputValidator().validate(_output([{"text": "x", "evidence_ids": []}]), working_set)


def test_unknown_evidence_id_rejected(working_set):
    with pytest.raises(CitationIntegrityError, match="ghost"):
        OutputValidator().validate(_output([{"text": "x", "evidence_ids": ["ghost"]}]), working_set)


def test_citation_to_unknown_evidence_rejected(working_set):
    output = _output(
        [
            {
                "text": "x",
                "evidence_ids": ["e1"],
                "citations": [{"evidence_id": "ghost", "usage_type": "reference"}],
            }
        ]
    )
    with pytest.raises(CitationIntegrityError):
        OutputValidator().validate(output, working_set)


def test_invalid_usage_type_rejected(working_set):
    output = _output(
        [
            {
                "text": "x",
                "evidence_ids": ["e1"],
                "citations": [{"evidence_id": "e1", "usage_type": "paraphrase"}],
            }
        ]
    )
    with pytest.raises(CitationIntegrityError, match="usage_type"):
        OutputValidator().validate(output, working_set)


def test_soft_warnings(working_set):
    output = _output(
        [
            {
                "text": "x",
                "evidence_ids": ["e1", "e2"],
                "citations": [
                    {"evidence_id": "e1", "usage_type": "direct"},
                    {"evidence_id": "e2", "usage_type": "reference", "char_start": 10, "char_end": 80},
                ],
            }
        ]
    )
    result = OutputValidator().validate(output, working_set)
    assert len(result.warnings) == 2
    assert any("quoted_text" in w for w in result.warnings)
    assert any("out of range" in w for w in result.warnings)


def test_missing_citations_are_synthesized(working_set):
    output = _output([{"text": "x", "evidence_ids": ["e1", "e2"]}])
    result = OutputValidator().validate(output, working_set)

    citations = result.output.sections[0].paragraphs[0].citations
    assert result.synthesized_citations == 2
    assert [(c.evidence_id, c.usage_type, c.char_start, c.char_end) for c in citations] == [
        ("e1", "reference", 0, 100),
        ("e2", "reference", 0, 50),
    ]
    # Input document untouched.
    assert output.sections[0].paragraphs[0].citations is None


def test_only_missing_citation_is_synthesized(working_set):
    output = _output(
        [
            {
                "text": "x",
                "evidence_ids": ["e1", "e2"],
                "citations": [{"evidence_id": "e1", "usage_type": "direct", "quoted_text": "q"}],
            }
        ]
    )
    result = OutputValidator().validate(output, working_set)
    citations = result.output.sections[0].paragraphs[0].citations
    assert [(c.evidence_id, c.usage_type) for c in citations] == [
        ("e1", "direct"),
        ("e2", "reference"),
    ]
    assert citations[0].quoted_text == "q"
    assert result.synthesized_citations == 1
