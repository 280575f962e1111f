"""Tests for the shared tokenizer and overlap helpers."""

from evidence_engine.text.tokenizer import jaccard, query_terms, significant_words, token_set, tokenize


def test_tokenize_basic():
    tokens = tokenize("The court held that the statute applies broadly")
    assert "court" in tokens
    assert "statute" in tokens
    # Stopwords removed
    assert "the" not in tokens
    assert "that" not in tokens


def test_tokenize_punctuation():
    tokens = tokenize("Consent, however, is not enough!")
    assert "consent" in tokens
    assert "however" in tokens
    assert "," not in tokens


def test_tokenize_empty():
    assert tokenize("") == []
    assert tokenize("   ") == []


def test_query_terms_keeps_long_terms():
    assert query_terms("Is GDPR consent valid?") == ["gdpr", "consent", "valid"]
    assert query_terms("a an of") == []


def test_significant_words_drop_short_tokens():
    assert significant_words("Art 5 of the data law") == frozenset({"data"})


def test_jaccard():
    assert jaccard(token_set("data protection law"), token_set("data protection law")) == 1.0
    assert jaccard(token_set("data protection"), token_set("criminal sentencing")) == 0.0
    assert jaccard(frozenset(), token_set("anything")) == 0.0
