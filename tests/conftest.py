import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tweet_sentiment.lexicon_store import Lexicon
from tweet_sentiment.utils import default_config, merge_config


@pytest.fixture
def config(tmp_path):
    cfg = default_config()
    cfg["processing"]["paths"] = {
        "output": str(tmp_path / "output"),
        "logs": str(tmp_path / "logs"),
    }
    return cfg


@pytest.fixture
def toy_config(config):
    """只以 'oil' 為停用詞的精簡配置"""
    return merge_config(config, {
        "processing": {
            "text_cleaning": {
                "use_standard_stopwords": False,
                "extra_stopwords": ["oil"],
            },
            "lexicons": {"enabled": ["toy"]},
            "scoring": {"reference": "toy"},
        }
    })


@pytest.fixture
def toy_lexicon():
    return Lexicon.from_entries("toy", [
        ("good", "positive"),
        ("great", "positive"),
        ("bad", "negative"),
        ("terrible", "negative"),
    ])


@pytest.fixture
def numeric_lexicon():
    return Lexicon.from_entries("weights", [
        ("good", 3),
        ("great", 3),
        ("bad", -3),
        ("crash", -2),
        ("rally", 1),
    ])
