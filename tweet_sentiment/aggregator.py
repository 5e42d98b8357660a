"""
彙總與比較模組
詞頻表、正負分組比較、詞彙差異排名與關聯詞統計
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import ComparisonBucket, Document, DocumentScore, TermDifference
from .tokenizer import term_counts

POSITIVE_LABEL = "positive"
NEGATIVE_LABEL = "negative"


def _ranked(counter: Dict[str, int], top_n: Optional[int]) -> List[Tuple[str, int]]:
    # 次數遞減，同次數依字母順序
    rows = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return rows if top_n is None else rows[:top_n]


def term_frequencies(documents: Iterable[Document], top_n: Optional[int] = 10) -> List[Tuple[str, int]]:
    """全體文件最常見的詞彙"""
    counter: Counter = Counter()
    for document in documents:
        counter.update(term_counts(document.normalized_text))
    return _ranked(counter, top_n)


def _reference_polarities(documents: List[Document], reference_scores: List[DocumentScore]) -> List[Any]:
    # 分數與文件一一對應時依位置配對，重複或空白id不會互相覆蓋
    if len(reference_scores) == len(documents):
        return [score.polarity for score in reference_scores]
    polarity_by_id = {score.document_id: score.polarity for score in reference_scores}
    return [polarity_by_id.get(document.id, 0) for document in documents]


def build_buckets(documents: Iterable[Document],
                  reference_scores: Iterable[DocumentScore]) -> Tuple[ComparisonBucket, ComparisonBucket]:
    """
    依參考極性將文件分為正、負兩組

    極性 > 0 歸正組、< 0 歸負組、= 0 或無分數者不納入。
    每組的正規化文本串接成一篇虛擬文件後計算詞頻。

    Args:
        documents: 文件序列
        reference_scores: 參考分數（任一詞典或情境極性）

    Returns:
        (正組, 負組)
    """
    documents = list(documents)
    polarities = _reference_polarities(documents, list(reference_scores))

    positive_texts: List[str] = []
    negative_texts: List[str] = []
    for document, polarity in zip(documents, polarities):
        if polarity > 0:
            positive_texts.append(document.normalized_text)
        elif polarity < 0:
            negative_texts.append(document.normalized_text)

    positive = ComparisonBucket(
        label=POSITIVE_LABEL,
        term_frequency=dict(term_counts(" ".join(positive_texts))),
        document_count=len(positive_texts),
    )
    negative = ComparisonBucket(
        label=NEGATIVE_LABEL,
        term_frequency=dict(term_counts(" ".join(negative_texts))),
        document_count=len(negative_texts),
    )
    return positive, negative


def difference_table(positive: ComparisonBucket,
                     negative: ComparisonBucket,
                     top_k: Optional[int] = 15) -> List[TermDifference]:
    """
    兩組共同詞彙的差異排名

    只保留兩組都出現的詞彙（內連接），僅出現在單一組的詞彙不列入。
    依 difference = count_pos - count_neg 遞減排序取前K名，
    差異相同時依詞彙字母順序，結果恰為K列。
    """
    if top_k is not None and top_k < 0:
        raise ValueError(f"top_k 不可為負數: {top_k}")

    shared = positive.term_frequency.keys() & negative.term_frequency.keys()
    rows = [
        TermDifference(term, positive.term_frequency[term], negative.term_frequency[term])
        for term in shared
    ]
    rows.sort(key=lambda row: (-row.difference, row.term))
    return rows if top_k is None else rows[:top_k]


def commonality_table(positive: ComparisonBucket,
                      negative: ComparisonBucket,
                      top_n: Optional[int] = None) -> List[Tuple[str, int]]:
    """共同詞彙及其在兩組中的較小次數"""
    shared = positive.term_frequency.keys() & negative.term_frequency.keys()
    common = {
        term: min(positive.term_frequency[term], negative.term_frequency[term])
        for term in shared
    }
    return _ranked(common, top_n)


def category_totals(scores: Iterable[DocumentScore]) -> Dict[str, int]:
    """將逐篇的類別計數加總為全體分佈"""
    totals: Counter = Counter()
    for score in scores:
        totals.update(score.components)
    return dict(sorted(totals.items(), key=lambda item: (-item[1], item[0])))


def word_associations(documents: Iterable[Document],
                      match_terms: Iterable[str],
                      stopwords: Iterable[str] = (),
                      top_n: Optional[int] = 25) -> List[Tuple[str, int]]:
    """
    與指定詞彙同時出現的詞

    Args:
        documents: 文件序列
        match_terms: 比對詞彙，文件含任一詞即納入
        stopwords: 額外排除的詞彙
        top_n: 回傳前N名，None表示全部

    Returns:
        [(term, count), ...]
    """
    matches = {term.lower() for term in match_terms}
    excluded = matches | {word.lower() for word in stopwords}
    counter: Counter = Counter()

    for document in documents:
        counts = term_counts(document.normalized_text)
        if not matches & counts.keys():
            continue
        counter.update({term: count for term, count in counts.items() if term not in excluded})

    return _ranked(counter, top_n)


class Aggregator:
    """依配置產生比較與頻率報表"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config["processing"].get("comparison", {})
        self.top_k = self.config.get("top_k", 15)
        self.top_terms = self.config.get("top_terms", 10)
        self.association_terms = list(self.config.get("association_terms") or [])
        self.logger = logging.getLogger("tweet_sentiment.aggregator")

    def compare(self, documents: List[Document],
                reference_scores: List[DocumentScore]) -> Tuple[Tuple[ComparisonBucket, ComparisonBucket],
                                                                List[TermDifference]]:
        positive, negative = build_buckets(documents, reference_scores)
        table = difference_table(positive, negative, self.top_k)
        self.logger.info(
            f"分組完成: 正 {positive.document_count} 篇 / 負 {negative.document_count} 篇，"
            f"共同詞彙差異表 {len(table)} 列"
        )
        return (positive, negative), table

    def frequencies(self, documents: List[Document]) -> List[Tuple[str, int]]:
        return term_frequencies(documents, self.top_terms)

    def associations(self, documents: List[Document],
                     match_terms: Optional[List[str]] = None) -> Dict[str, List[Tuple[str, int]]]:
        """每個比對詞各自的關聯詞表"""
        terms = match_terms if match_terms is not None else self.association_terms
        return {term: word_associations(documents, [term]) for term in terms}
