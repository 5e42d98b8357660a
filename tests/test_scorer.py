import math

import pytest

from tweet_sentiment.errors import ConfigurationError
from tweet_sentiment.lexicon_store import Lexicon
from tweet_sentiment.models import Document, TokenOccurrence
from tweet_sentiment.scorer import ContextPolarityScorer, Scorer, score, score_corpus
from tweet_sentiment.tokenizer import count_terms, tokenize
from tweet_sentiment.utils import merge_config


def test_categorical_polarity_is_positive_minus_negative(toy_lexicon):
    tokens = [
        TokenOccurrence("d1", "good", 3),
        TokenOccurrence("d1", "bad", 1),
        TokenOccurrence("d1", "terrible", 4),
        TokenOccurrence("d1", "brent", 2),
    ]
    result = score(tokens, toy_lexicon)
    assert result.polarity == 3 - 5
    assert result.components == {"positive": 3, "negative": 5}
    assert result.matched_terms == 8
    assert result.document_id == "d1"
    assert result.lexicon == "toy"


def test_categorical_keeps_extra_categories_out_of_polarity():
    lexicon = Lexicon.from_entries("lm", [
        ("gain", "positive"), ("loss", "negative"), ("may", "uncertainty"), ("court", "litigious"),
    ])
    result = score(count_terms("d1", "gain may may court loss gain"), lexicon)
    assert result.polarity == 1
    assert result.components == {"positive": 2, "uncertainty": 2, "litigious": 1, "negative": 1}


def test_numeric_polarity_is_weighted_sum(numeric_lexicon):
    result = score(count_terms("d1", "good good crash brent"), numeric_lexicon)
    assert result.polarity == 3 * 2 - 2
    assert result.components == {"3": 2, "-2": 1}


def test_numeric_scorer_is_linear(numeric_lexicon):
    first = count_terms("a", "good rally crash crash")
    second = count_terms("a", "bad rally great brent")
    combined = score(first + second, numeric_lexicon)
    assert combined.polarity == (
        score(first, numeric_lexicon).polarity + score(second, numeric_lexicon).polarity
    )


def test_score_accepts_token_stream(toy_lexicon):
    result = score(tokenize("d9", "good good bad"), toy_lexicon)
    assert result.polarity == 1
    assert result.document_id == "d9"


def test_lookup_miss_contributes_zero(toy_lexicon, numeric_lexicon):
    for lexicon in (toy_lexicon, numeric_lexicon):
        result = score(count_terms("d1", "brent wti opec"), lexicon, document_id="d1")
        assert result.polarity == 0
        assert result.matched_terms == 0
        assert result.document_id == "d1"


def test_empty_document_scores_zero(toy_lexicon):
    result = score([], toy_lexicon, document_id="empty")
    assert result.polarity == 0
    assert result.components == {}


def test_score_corpus_keeps_unmatched_documents(toy_lexicon):
    documents = [
        Document(1, "", "good news"),
        Document(2, "", "brent flat"),
        Document(3, "", "bad day"),
    ]
    kept = score_corpus(documents, toy_lexicon)
    assert [s.polarity for s in kept] == [1, 0, -1]

    sparse = score_corpus(documents, toy_lexicon, keep_unmatched=False)
    assert [s.document_id for s in sparse] == [1, 3]


def test_scorer_uses_keep_unmatched_from_config(config, toy_lexicon):
    cfg = merge_config(config, {"processing": {"scoring": {"keep_unmatched": False}}})
    documents = [Document(1, "", "brent flat"), Document(2, "", "great")]
    results = Scorer(cfg).score_documents(documents, toy_lexicon)
    assert [s.document_id for s in results] == [2]


def test_context_polarity_plain_word(config, toy_lexicon):
    scorer = ContextPolarityScorer(config, toy_lexicon)
    assert scorer.score_text(1, "good").polarity == pytest.approx(1.0)
    assert scorer.score_text(2, "brent bad").polarity == pytest.approx(-1 / math.sqrt(2))


def test_context_polarity_negation_flips_sign(config, toy_lexicon):
    scorer = ContextPolarityScorer(config, toy_lexicon)
    assert scorer.score_text(1, "not good").polarity == pytest.approx(-1 / math.sqrt(2))
    assert scorer.score_text(2, "not never good").polarity == pytest.approx(1 / math.sqrt(3))


def test_context_polarity_amplifiers(config, toy_lexicon):
    scorer = ContextPolarityScorer(config, toy_lexicon)
    assert scorer.score_text(1, "very good").polarity == pytest.approx(1.8 / math.sqrt(2))
    assert scorer.score_text(2, "slightly bad").polarity == pytest.approx(-0.2 / math.sqrt(2))


def test_context_polarity_window_is_bounded(config, toy_lexicon):
    scorer = ContextPolarityScorer(config, toy_lexicon)
    # 否定詞距離超過前方視窗（4個詞）
    text = "not a b c d good"
    assert scorer.score_text(1, text).polarity == pytest.approx(1 / math.sqrt(6))


def test_context_polarity_empty_text(config, toy_lexicon):
    result = ContextPolarityScorer(config, toy_lexicon).score_text("e", "")
    assert result.polarity == 0
    assert result.lexicon == "context"


def test_context_polarity_requires_categorical_lexicon(config, numeric_lexicon):
    with pytest.raises(ConfigurationError):
        ContextPolarityScorer(config, numeric_lexicon)
