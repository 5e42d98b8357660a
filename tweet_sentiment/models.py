"""
資料模型
管線各階段使用的不可變紀錄型別
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple, Union

# 詞典極性單位：類別標籤（positive/negative/...）或帶號整數
PolarityUnit = Union[str, int]


@dataclass(frozen=True)
class Document:
    """單篇推文：原始文本與正規化後文本"""
    id: Any
    raw_text: str
    normalized_text: str = ""


@dataclass(frozen=True)
class TokenOccurrence:
    document_id: Any
    term: str
    count: int = 1

    def __post_init__(self):
        if self.count < 1:
            raise ValueError(f"count必須 >= 1: {self.term}={self.count}")


@dataclass(frozen=True)
class LexiconEntry:
    term: str
    polarity_unit: PolarityUnit


@dataclass(frozen=True)
class DocumentScore:
    """單篇文件對單一詞典的情緒分數"""
    document_id: Any
    lexicon: str
    polarity: float
    components: Dict[str, int] = field(default_factory=dict)
    matched_terms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ComparisonBucket:
    """依參考極性正負號分組後的詞頻表"""
    label: str
    term_frequency: Dict[str, int]
    document_count: int = 0


@dataclass(frozen=True)
class TermDifference:
    term: str
    count_pos: int
    count_neg: int

    @property
    def difference(self) -> int:
        return self.count_pos - self.count_neg

    def to_dict(self) -> Dict[str, Any]:
        return {
            "term": self.term,
            "count_pos": self.count_pos,
            "count_neg": self.count_neg,
            "difference": self.difference,
        }


@dataclass
class PipelineResult:
    """整批處理結果，交給報表輸出端使用"""
    documents: List[Document] = field(default_factory=list)
    scores: Dict[str, List[DocumentScore]] = field(default_factory=dict)
    reference_scores: List[DocumentScore] = field(default_factory=list)
    buckets: Optional[Tuple[ComparisonBucket, ComparisonBucket]] = None
    difference_table: List[TermDifference] = field(default_factory=list)
    term_frequencies: List[Tuple[str, int]] = field(default_factory=list)
    category_totals: Dict[str, Dict[str, int]] = field(default_factory=dict)
    associations: Dict[str, List[Tuple[str, int]]] = field(default_factory=dict)
    dropped_count: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    quality_report: Dict[str, Any] = field(default_factory=dict)

    def summary(self) -> Dict[str, Any]:
        """輸出為可序列化的摘要字典（不含逐篇分數）"""
        pos, neg = self.buckets if self.buckets else (None, None)
        return {
            "document_count": len(self.documents),
            "dropped_count": self.dropped_count,
            "lexicons": sorted(self.scores),
            "buckets": {
                "positive": pos.document_count if pos else 0,
                "negative": neg.document_count if neg else 0,
            },
            "difference_table": [row.to_dict() for row in self.difference_table],
            "term_frequencies": [
                {"term": term, "count": count} for term, count in self.term_frequencies
            ],
            "category_totals": self.category_totals,
            "associations": {
                match: [{"term": term, "count": count} for term, count in rows]
                for match, rows in self.associations.items()
            },
            "errors": self.errors,
            "quality_report": self.quality_report,
        }
