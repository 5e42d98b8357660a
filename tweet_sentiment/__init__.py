"""
推文情緒分析模組
以詞典為基礎的推文文本正規化與情緒評分套件

主要功能：
- 文本正規化（轉推標記、提及、標點、連結、縮寫、停用詞）
- 斷詞與詞頻統計
- 類別型（bing、loughran）與數值型（afinn）詞典評分
- 情境極性（否定詞、加強詞）參考分數
- 正負分組比較與共同詞彙差異排名
- 資料品質監控
"""

__version__ = "1.0.0"
__author__ = "NCCU Data Visualization Team"

from .errors import ConfigurationError, PipelineError, ValidationError
from .models import (
    ComparisonBucket, Document, DocumentScore, LexiconEntry,
    PipelineResult, TermDifference, TokenOccurrence,
)
from .text_normalizer import TextNormalizer
from .tokenizer import count_terms, tokenize
from .lexicon_store import Lexicon, LexiconStore
from .scorer import ContextPolarityScorer, Scorer, score
from .aggregator import Aggregator, build_buckets, difference_table
from .pipeline import SentimentPipeline
from .quality_monitor import QualityMonitor
from .utils import load_config, setup_logging

__all__ = [
    "ConfigurationError",
    "PipelineError",
    "ValidationError",
    "ComparisonBucket",
    "Document",
    "DocumentScore",
    "LexiconEntry",
    "PipelineResult",
    "TermDifference",
    "TokenOccurrence",
    "TextNormalizer",
    "tokenize",
    "count_terms",
    "Lexicon",
    "LexiconStore",
    "Scorer",
    "ContextPolarityScorer",
    "score",
    "Aggregator",
    "build_buckets",
    "difference_table",
    "SentimentPipeline",
    "QualityMonitor",
    "load_config",
    "setup_logging",
]
