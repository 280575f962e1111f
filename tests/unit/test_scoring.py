"""Tests for composite evidence scoring, text signals and argument groups."""

import pytest

from conftest import make_unit
from evidence_engine.config.settings import Settings
from evidence_engine.models.domain import SourceRecord
from evidence_engine.models.source_types import SourceCategory
from evidence_engine.scoring.argument_groups import detect_argument_groups
from evidence_engine.scoring.evidence_scorer import EvidenceScorer
from evidence_engine.scoring.text_signals import (
    ARGUMENT_CONNECTOR,
    CROSS_REFERENCE,
    LEGAL_CITATION,
    analyze_units,
    detect_markers,
)


@pytest.fixture
def scorer():
    return EvidenceScorer(Settings(openai_api_key="x", google_api_key="x"))


def test_detect_markers():
    assert detect_markers("Smith v. Jones decided the point.") == (LEGAL_CITATION,)
    assert detect_markers("Subject to section 2, the rule applies.") == (CROSS_REFERENCE,)
    assert detect_markers("However, the rule applies.") == (ARGUMENT_CONNECTOR,)
    assert detect_markers("Plain descriptive sentence.") == ()


def test_detect_markers_reports_each_kind_once():
    text = "However, see Smith v. Jones. Moreover, cf. Brown, notwithstanding the rule."
    markers = detect_markers(text)
    assert len(markers) == len(set(markers)) == 3


def test_composite_score_formula(scorer):
    unit = make_unit(
        "u1",
        source_type="statute",
        text="consent " + "a" * 242,
        similarity=0.8,
        page_number=5,
    )
    pool = scorer.score([unit], "consent processing")
    # 0.8 * 1.4 * 0.7 * 0.95 + keyword 0.075 + singleton coherence 0.1
    assert pool.units[0].derived_score == pytest.approx(0.9198, abs=1e-6)
    assert pool.markers["u1"] == ()


def test_length_normalization_bounds(scorer):
    assert scorer.length_normalization("x" * 100) == 0.7
    assert scorer.length_normalization("x" * 400) == pytest.approx(0.8)
    assert scorer.length_normalization("x" * 2000) == 1.0


def test_positional_bias_floor(scorer):
    assert scorer.positional_bias(0) == 1.0
    assert scorer.positional_bias(5) == pytest.approx(0.95)
    assert scorer.positional_bias(500) == 0.9


def test_keyword_bonus_capped(scorer):
    assert scorer.keyword_bonus("anything", []) == 0.0
    assert scorer.keyword_bonus("consent and processing", ["consent", "processing"]) == 0.15


def test_primary_authority_outranks_informal(scorer):
    text = "a neutral sentence about data"
    units = [
        make_unit("web", source_id="w", source_type="website", text=text),
        make_unit("law", source_id="l", source_type="statute", text=text),
    ]
    pool = scorer.score(units, "unrelated")
    assert [u.id for u in pool.units] == ["law", "web"]


def test_scores_sorted_descending(scorer):
    units = [
        make_unit(f"u{i}", source_id=f"s{i}", similarity=0.1 * (i + 1)) for i in range(5)
    ]
    pool = scorer.score(units, "query")
    scores = [u.derived_score for u in pool.units]
    assert scores == sorted(scores, reverse=True)


def test_catalog_overrides_source_type(scorer):
    unit = make_unit("u1", source_id="s1", source_type="other")
    pool = scorer.score([unit], "q", {"s1": SourceRecord("s1", "case", "A v. B")})
    assert pool.units[0].source_type == "case"
    assert pool.units[0].source_category is SourceCategory.PRIMARY_AUTHORITY


def test_argument_groups_split_on_gap():
    units = [
        make_unit(f"a{seq}", source_id="a", text="plain text", sequence_index=seq)
        for seq in (0, 1, 2, 9)
    ]
    groups = detect_argument_groups(units, analyze_units(units), gap_threshold=5)
    assert groups == {"a_arg_0": ("a0", "a1", "a2"), "a_arg_1": ("a9",)}


def test_argument_groups_split_on_strong_marker():
    units = [
        make_unit("a0", source_id="a", text="The rule is stated.", sequence_index=0),
        make_unit("a1", source_id="a", text="However, exceptions exist.", sequence_index=1),
        make_unit("a2", source_id="a", text="They are narrow.", sequence_index=2),
    ]
    groups = detect_argument_groups(units, analyze_units(units))
    assert groups == {"a_arg_0": ("a0",), "a_arg_1": ("a1", "a2")}


def test_argument_groups_never_span_sources():
    units = [
        make_unit("a0", source_id="a", text="text", sequence_index=0),
        make_unit("b1", source_id="b", text="text", sequence_index=1),
    ]
    groups = detect_argument_groups(units, analyze_units(units))
    assert set(groups) == {"a_arg_0", "b_arg_0"}


def test_group_leader_gets_coherence_bonus(scorer):
    units = [
        make_unit("a0", source_id="a", text="plain text", sequence_index=0, similarity=0.5),
        make_unit("a1", source_id="a", text="plain text", sequence_index=1, similarity=0.5),
    ]
    pool = scorer.score(units, "q")
    by_id = {u.id: u.derived_score for u in pool.units}
    assert by_id["a0"] == pytest.approx(by_id["a1"] + 0.05)


def test_scoring_is_deterministic(scorer):
    units = [
        make_unit(f"u{i}", source_id=f"s{i % 2}", text=f"However, point {i} v. other", sequence_index=i)
        for i in range(6)
    ]
    first = scorer.score(units, "point other")
    second = scorer.score(units, "point other")
    assert [(u.id, u.derived_score) for u in first.units] == [
        (u.id, u.derived_score) for u in second.units
    ]
