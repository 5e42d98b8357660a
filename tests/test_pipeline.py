import orjson
import pandas as pd
import pytest

from tweet_sentiment.errors import ConfigurationError, ValidationError
from tweet_sentiment.lexicon_store import LexiconStore
from tweet_sentiment.pipeline import SentimentPipeline
from tweet_sentiment.utils import merge_config, read_records


@pytest.fixture
def toy_pipeline(toy_config, toy_lexicon):
    store = LexiconStore(toy_config)
    store.register(toy_lexicon)
    return SentimentPipeline(toy_config, lexicon_store=store)


def test_end_to_end_polarities(toy_pipeline):
    records = [
        {"id": 1, "text": "good great oil rises"},
        {"id": 2, "text": "bad terrible oil falls"},
    ]
    result = toy_pipeline.run(records)

    assert [doc.normalized_text for doc in result.documents] == ["good great rises", "bad terrible falls"]
    assert [s.polarity for s in result.scores["toy"]] == [2, -2]
    assert result.dropped_count == 0
    assert result.category_totals["toy"] == {"negative": 2, "positive": 2}


def test_empty_input_produces_empty_output(toy_pipeline):
    result = toy_pipeline.run([])
    assert result.documents == []
    assert result.scores == {"toy": []}
    assert result.difference_table == []
    assert result.dropped_count == 0
    assert result.errors == []


def test_malformed_records_are_dropped_not_fatal(toy_pipeline):
    records = [
        {"id": "a", "text": "good news"},
        {"id": "b"},
        {"id": "c", "text": None},
        {"id": "d", "text": 42},
        "not a record",
        {"id": "e", "text": "terrible news"},
    ]
    result = toy_pipeline.run(records)

    assert [doc.id for doc in result.documents] == ["a", "e"]
    assert result.dropped_count == 4
    assert [error["record_index"] for error in result.errors] == [1, 2, 3, 4]
    assert result.quality_report["overall_statistics"]["dropped"] == 4


def test_validate_record(toy_pipeline):
    assert toy_pipeline.validate_record({"text": "hello"}, 4) == (5, "hello")
    with pytest.raises(ValidationError) as excinfo:
        toy_pipeline.validate_record({"id": 1}, 0)
    assert excinfo.value.field == "text"


def test_zero_match_documents_are_kept(toy_pipeline):
    result = toy_pipeline.run([{"id": 1, "text": "brent flat"}, {"id": 2, "text": "good"}])
    assert [(s.document_id, s.polarity) for s in result.scores["toy"]] == [(1, 0), (2, 1)]


def test_difference_table_from_reference_scores(toy_pipeline):
    records = [
        {"id": 1, "text": "good prices up up up"},
        {"id": 2, "text": "great rally rise"},
        {"id": 3, "text": "bad prices up down down"},
    ]
    result = toy_pipeline.run(records, reference="toy")

    positive, negative = result.buckets
    assert positive.document_count == 2
    assert negative.document_count == 1
    assert [row.to_dict() for row in result.difference_table] == [
        {"term": "up", "count_pos": 3, "count_neg": 1, "difference": 2},
        {"term": "prices", "count_pos": 1, "count_neg": 1, "difference": 0},
    ]


def test_context_reference_uses_bundled_lexicon(toy_config, toy_lexicon):
    cfg = merge_config(toy_config, {"processing": {"scoring": {"reference": "context"}}})
    store = LexiconStore(cfg)
    store.register(toy_lexicon)
    result = SentimentPipeline(cfg, lexicon_store=store).run([
        {"id": 1, "text": "good strong rally"},
        {"id": 2, "text": "not good at all"},
    ])
    assert [s.lexicon for s in result.reference_scores] == ["context", "context"]
    assert result.reference_scores[0].polarity > 0
    assert result.reference_scores[1].polarity < 0


def test_parallel_scoring_matches_sequential(config):
    records = [
        {"id": i, "text": text} for i, text in enumerate([
            "Brent rally boosts confidence, great gains",
            "Oil crash fears grow as demand weakens",
            "OPEC may cut output, uncertain outlook",
        ])
    ]
    sequential = SentimentPipeline(config).run(records, lexicon_names=["bing", "afinn", "loughran"])

    parallel_config = merge_config(config, {"processing": {"performance": {"max_workers": 3}}})
    parallel = SentimentPipeline(parallel_config).run(records, lexicon_names=["bing", "afinn", "loughran"])

    assert list(parallel.scores) == ["bing", "afinn", "loughran"]
    assert parallel.scores == sequential.scores


def test_unknown_lexicon_fails_with_configuration_error(config):
    with pytest.raises(ConfigurationError):
        SentimentPipeline(config).run([{"id": 1, "text": "good"}], lexicon_names=["nrc"])


def test_small_chunks_preserve_order(toy_config, toy_lexicon):
    cfg = merge_config(toy_config, {"processing": {"performance": {"chunk_size": 2}}})
    store = LexiconStore(cfg)
    store.register(toy_lexicon)
    records = [{"id": i, "text": "good" if i % 2 else "bad"} for i in range(5)]
    result = SentimentPipeline(cfg, lexicon_store=store).run(records)
    assert [doc.id for doc in result.documents] == [0, 1, 2, 3, 4]
    assert [s.polarity for s in result.scores["toy"]] == [-1, 1, -1, 1, -1]


def test_association_terms(toy_pipeline):
    result = toy_pipeline.run(
        [{"id": 1, "text": "fed hikes rates"}, {"id": 2, "text": "opec cut"}],
        association_terms=["fed"],
    )
    assert result.associations == {"fed": [("hikes", 1), ("rates", 1)]}


def test_process_file_writes_reports(config, tmp_path):
    input_file = tmp_path / "tweets.csv"
    pd.DataFrame({
        "id": ["101", "102", "103"],
        "text": ["RT @desk: Brent posts strong gains, great week", None, "Crude crash deepens, terrible losses"],
    }).to_csv(input_file, index=False)

    output_dir = tmp_path / "reports"
    stats = SentimentPipeline(config).process_file(input_file, output_dir)

    assert stats["success"] is True
    assert stats["input_count"] == 3
    assert stats["output_count"] == 2
    assert stats["dropped_count"] == 1

    for name in ("bing", "afinn", "loughran", "reference"):
        assert (output_dir / f"scores_{name}.csv").exists()

    bing = pd.read_csv(output_dir / "scores_bing.csv", dtype={"document_id": str})
    assert list(bing["document_id"]) == ["101", "103"]
    assert bing["polarity"].tolist()[0] > 0
    assert bing["polarity"].tolist()[1] < 0

    report = orjson.loads((output_dir / "report.json").read_bytes())
    assert report["dropped_count"] == 1
    assert report["document_count"] == 2
    assert report["lexicons"] == ["afinn", "bing", "loughran"]


def test_blank_csv_ids_fall_back_to_ordinals(toy_pipeline, tmp_path):
    path = tmp_path / "tweets.csv"
    path.write_text("id,text\n,good great week\n,terrible awful losses\n", encoding="utf-8")
    result = toy_pipeline.run(read_records(path))

    assert [doc.id for doc in result.documents] == [1, 2]
    positive, negative = result.buckets
    assert positive.document_count == 1
    assert negative.document_count == 1
    assert positive.term_frequency == {"good": 1, "great": 1, "week": 1}


def test_nan_ids_fall_back_to_ordinals(toy_pipeline):
    records = [
        {"id": float("nan"), "text": "good news"},
        {"id": float("nan"), "text": "bad news"},
    ]
    result = toy_pipeline.run(records)

    assert [doc.id for doc in result.documents] == [1, 2]
    positive, negative = result.buckets
    assert (positive.document_count, negative.document_count) == (1, 1)


def test_process_file_drops_unparseable_rows(config, tmp_path):
    input_file = tmp_path / "tweets.csv"
    input_file.write_text("id,text\n1,good week\n2,bad,extra\n3,great gains\n", encoding="utf-8")

    stats = SentimentPipeline(config).process_file(input_file, tmp_path / "out")

    assert "error" not in stats
    assert stats["input_count"] == 3
    assert stats["output_count"] == 2
    assert stats["dropped_count"] == 1
    report = orjson.loads((tmp_path / "out" / "report.json").read_bytes())
    assert report["dropped_count"] == 1


def test_process_file_empty_input(config, tmp_path):
    input_file = tmp_path / "tweets.csv"
    input_file.write_bytes(b"")

    stats = SentimentPipeline(config).process_file(input_file, tmp_path / "out")

    assert "error" not in stats
    assert stats["output_count"] == 0
    assert stats["dropped_count"] == 0


def test_process_file_missing_input(config, tmp_path):
    stats = SentimentPipeline(config).process_file(tmp_path / "missing.csv", tmp_path / "out")
    assert "error" in stats


def test_validate_processing_setup(config):
    results = SentimentPipeline(config).validate_processing_setup()
    assert all(results["text_normalizer"].values())
    assert all(status["loaded"] for status in results["lexicons"].values())
    assert results["sample_processing"]["success"] is True
