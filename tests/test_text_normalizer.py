import pytest

from tweet_sentiment.models import Document
from tweet_sentiment.text_normalizer import TextNormalizer, load_contractions
from tweet_sentiment.utils import merge_config


@pytest.fixture
def normalizer(toy_config):
    return TextNormalizer(toy_config)


def test_retweet_marker_and_mentions_removed(normalizer):
    assert normalizer.normalize("RT @trader: Oil prices RISE!") == "prices rise"


def test_retweet_marker_is_token_anchored(normalizer):
    assert normalizer.normalize("The ART of trading") == "the art of trading"
    assert normalizer.normalize("RT: START now") == "start now"


def test_substring_retweet_mode_reproduces_legacy_removal(toy_config):
    cfg = merge_config(toy_config, {"processing": {"text_cleaning": {"retweet_match": "substring"}}})
    assert TextNormalizer(cfg).normalize("The ART of trading") == "the a of trading"


def test_urls_removed_after_punctuation(normalizer):
    assert normalizer.normalize("Brent up https://t.co/abc123 today") == "brent up today"


@pytest.mark.parametrize("raw", ["Traders don't panic", "Traders don’t panic"])
def test_contractions_expanded(normalizer, raw):
    assert normalizer.normalize(raw) == "traders do not panic"


def test_contractions_expand_before_stopword_removal(toy_config):
    cfg = merge_config(toy_config, {"processing": {"text_cleaning": {"extra_stopwords": ["not"]}}})
    assert TextNormalizer(cfg).normalize("They don't stop") == "they do stop"


def test_smart_quotes_removed(normalizer):
    assert normalizer.normalize("“Brent” rallies") == "brent rallies"


def test_mentions_removed(normalizer):
    assert normalizer.normalize("@user_1 hello @another") == "hello"


def test_emoji_stripped_by_default(normalizer):
    assert normalizer.normalize("Brent 🚀 moon") == "brent moon"


def test_emoji_demojized(toy_config):
    cfg = merge_config(toy_config, {"processing": {"text_cleaning": {"emoji_mode": "demojize"}}})
    assert TextNormalizer(cfg).normalize("Brent 🚀 moon") == "brent rocket moon"


def test_encoding_anomalies_replaced_not_raised(normalizer):
    assert normalizer.normalize(b"Brent \xff rally") == "brent rally"
    assert normalizer.normalize("Brent \ud800 rally") == "brent rally"
    assert normalizer.normalize(None) == ""
    assert normalizer.normalize("") == ""


def test_standard_and_domain_stopwords(config):
    normalizer = TextNormalizer(config)
    assert normalizer.normalize("The price of #CrudeOil is rising") == "price rising"


@pytest.mark.parametrize("raw", [
    "RT @OilTrader: #CrudeOil prices SURGE after OPEC cut!!! https://t.co/xyz",
    "Don’t panic… “Brent” is only down 2% 📉 @reuters",
    "WTI futures: won't recover? http://bit.ly/abc ART & START",
    "   multiple     spaces\tand\nnewlines   ",
    "",
])
def test_normalize_is_idempotent(config, raw):
    normalizer = TextNormalizer(config)
    once = normalizer.normalize(raw)
    assert normalizer.normalize(once) == once


def test_normalize_document_returns_new_record(normalizer):
    document = Document(id=1, raw_text="Good NEWS for oil")
    normalized = normalizer.normalize_document(document)
    assert normalized.normalized_text == "good news for"
    assert document.normalized_text == ""


def test_contraction_table_keys_are_lowercase():
    table = load_contractions()
    assert table["don't"] == "do not"
    assert table["dont"] == "do not"
    assert all(key == key.lower() for key in table)


def test_validate_setup_passes_with_default_config(config):
    results = TextNormalizer(config).validate_setup()
    assert results
    assert all(results.values())
