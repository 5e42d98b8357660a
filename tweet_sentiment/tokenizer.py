"""
斷詞模組
將正規化文本切分為 (document_id, term) 序列並計算詞頻
"""

from collections import Counter
from typing import Any, Iterator, List, NamedTuple

from .models import TokenOccurrence


class TokenPair(NamedTuple):
    document_id: Any
    term: str


class TokenStream:
    """
    可重複迭代的惰性詞序列

    不保存迭代狀態，每次迭代都從normalized_text重新切分。
    """

    __slots__ = ("document_id", "text")

    def __init__(self, document_id: Any, text: str):
        self.document_id = document_id
        self.text = text or ""

    def __iter__(self) -> Iterator[TokenPair]:
        for term in self.text.split():
            if term:
                yield TokenPair(self.document_id, term)

    def terms(self) -> List[str]:
        return [pair.term for pair in self]

    def __repr__(self):
        return f"TokenStream(document_id={self.document_id!r}, text={self.text[:40]!r})"


def tokenize(document_id: Any, normalized_text: str) -> TokenStream:
    """以空白切分正規化文本，丟棄空字串"""
    return TokenStream(document_id, normalized_text)


def term_counts(normalized_text: str) -> Counter:
    return Counter(normalized_text.split()) if normalized_text else Counter()


def count_terms(document_id: Any, normalized_text: str) -> List[TokenOccurrence]:
    """
    將詞序列彙整為詞頻紀錄

    Args:
        document_id: 文件識別
        normalized_text: 正規化後文本

    Returns:
        TokenOccurrence列表，依詞彙首次出現順序排列
    """
    counts = Counter(pair.term for pair in tokenize(document_id, normalized_text))
    return [TokenOccurrence(document_id, term, count) for term, count in counts.items()]
