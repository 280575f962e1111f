"""Source types, their categories, and the fixed category weight table."""

from __future__ import annotations

from enum import Enum


class SourceCategory(str, Enum):
    PRIMARY_AUTHORITY = "primary_authority"
    ACADEMIC = "academic"
    INSTITUTIONAL = "institutional"
    INFORMAL = "informal"


SOURCE_TYPE_CATEGORY: dict[str, SourceCategory] = {
    "case": SourceCategory.PRIMARY_AUTHORITY,
    "statute": SourceCategory.PRIMARY_AUTHORITY,
    "regulation": SourceCategory.PRIMARY_AUTHORITY,
    "constitution": SourceCategory.PRIMARY_AUTHORITY,
    "treaty": SourceCategory.PRIMARY_AUTHORITY,
    "journal_article": SourceCategory.ACADEMIC,
    "book": SourceCategory.ACADEMIC,
    "commentary": SourceCategory.ACADEMIC,
    "working_paper": SourceCategory.ACADEMIC,
    "thesis": SourceCategory.ACADEMIC,
    "committee_report": SourceCategory.INSTITUTIONAL,
    "law_commission_report": SourceCategory.INSTITUTIONAL,
    "white_paper": SourceCategory.INSTITUTIONAL,
    "government_report": SourceCategory.INSTITUTIONAL,
    "blog_post": SourceCategory.INFORMAL,
    "news_article": SourceCategory.INFORMAL,
    "website": SourceCategory.INFORMAL,
    "other": SourceCategory.INFORMAL,
}

SOURCE_TYPE_WEIGHTS: dict[str, float] = {
    "case": 1.3,
    "statute": 1.4,
    "regulation": 1.3,
    "constitution": 1.35,
    "treaty": 1.35,
    "journal_article": 1.1,
    "book": 1.05,
    "commentary": 1.05,
    "working_paper": 1.0,
    "thesis": 1.0,
    "committee_report": 0.95,
    "law_commission_report": 0.95,
    "white_paper": 0.95,
    "government_report": 0.95,
    "blog_post": 0.85,
    "news_article": 0.85,
    "website": 0.8,
    "other": 0.75,
}

# Used when only the category is known.
CATEGORY_WEIGHTS: dict[SourceCategory, float] = {
    SourceCategory.PRIMARY_AUTHORITY: 1.3,
    SourceCategory.ACADEMIC: 1.0,
    SourceCategory.INSTITUTIONAL: 0.95,
    SourceCategory.INFORMAL: 0.75,
}

LOWEST_WEIGHT = 0.75

SOURCE_TYPE_LABELS: dict[str, str] = {
    "case": "Case Law",
    "statute": "Statute",
    "regulation": "Regulation",
    "constitution": "Constitution",
    "treaty": "Treaty",
    "journal_article": "Journal Article",
    "book": "Book",
    "commentary": "Commentary / Textbook",
    "working_paper": "Working Paper",
    "thesis": "Thesis / Dissertation",
    "committee_report": "Committee Report",
    "law_commission_report": "Law Commission Report",
    "white_paper": "White Paper",
    "government_report": "Government Report",
    "blog_post": "Blog Post",
    "news_article": "News Article",
    "website": "Website",
    "other": "Other",
}


def category_for(source_type: str | None) -> SourceCategory:
    """Unknown types fall into the lowest tier."""
    return SOURCE_TYPE_CATEGORY.get(source_type or "", SourceCategory.INFORMAL)


def weight_for(source_type: str | None, category: SourceCategory | None = None) -> float:
    if source_type in SOURCE_TYPE_WEIGHTS:
        return SOURCE_TYPE_WEIGHTS[source_type]
    if category is not None:
        return CATEGORY_WEIGHTS.get(category, LOWEST_WEIGHT)
    return LOWEST_WEIGHT


def label_for(source_type: str | None) -> str:
    return SOURCE_TYPE_LABELS.get(source_type or "", source_type or "Unknown")
