"""
情緒評分模組
將文件詞頻與詞典做內連接（inner join），依詞典類型彙總為文件極性
"""

import logging
import math
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from .errors import ConfigurationError
from .lexicon_store import CATEGORICAL, NUMERIC, Lexicon
from .models import Document, DocumentScore, TokenOccurrence
from .tokenizer import TokenPair, count_terms

POSITIVE = "positive"
NEGATIVE = "negative"

CONTEXT_LEXICON_NAME = "context"

TokenLike = Union[TokenOccurrence, TokenPair]


class CategoricalStrategy:
    """類別型：各類別計數，極性 = positive數 - negative數"""

    def aggregate(self, counts: Counter, lexicon: Lexicon) -> Tuple[int, Dict[str, int], int]:
        components: Counter = Counter()
        matched = 0
        for term, count in counts.items():
            category = lexicon.lookup(term)
            if category is None:
                continue
            components[category] += count
            matched += count

        polarity = components.get(POSITIVE, 0) - components.get(NEGATIVE, 0)
        return polarity, dict(components), matched


class NumericStrategy:
    """數值型：極性 = Σ 強度 × 次數；components以強度值為鍵記錄次數"""

    def aggregate(self, counts: Counter, lexicon: Lexicon) -> Tuple[int, Dict[str, int], int]:
        components: Counter = Counter()
        polarity = 0
        matched = 0
        for term, count in counts.items():
            magnitude = lexicon.lookup(term)
            if magnitude is None:
                continue
            polarity += magnitude * count
            components[str(magnitude)] += count
            matched += count
        return polarity, dict(components), matched


STRATEGIES = {
    CATEGORICAL: CategoricalStrategy(),
    NUMERIC: NumericStrategy(),
}


def _fold_counts(document_tokens: Iterable[TokenLike]) -> Tuple[Counter, Any]:
    counts: Counter = Counter()
    document_id = None
    for token in document_tokens:
        if document_id is None:
            document_id = token.document_id
        # TokenPair是tuple，其count為tuple方法而非詞頻
        counts[token.term] += token.count if isinstance(token, TokenOccurrence) else 1
    return counts, document_id


def score(document_tokens: Iterable[TokenLike],
          lexicon: Lexicon,
          document_id: Any = None) -> DocumentScore:
    """
    計算單篇文件對單一詞典的分數

    不在詞典中的詞彙不計入（內連接語意），查無詞彙不會拋出例外。

    Args:
        document_tokens: 同一文件的TokenOccurrence或TokenPair序列
        lexicon: 詞典
        document_id: 文件識別，None時取自第一個token

    Returns:
        DocumentScore，零命中時極性為0
    """
    counts, first_id = _fold_counts(document_tokens)
    strategy = STRATEGIES[lexicon.kind]
    polarity, components, matched = strategy.aggregate(counts, lexicon)

    return DocumentScore(
        document_id=document_id if document_id is not None else first_id,
        lexicon=lexicon.name,
        polarity=polarity,
        components=components,
        matched_terms=matched,
    )


def score_corpus(documents: Iterable[Document],
                 lexicon: Lexicon,
                 keep_unmatched: bool = True) -> List[DocumentScore]:
    """逐篇評分；keep_unmatched為False時省略零命中文件"""
    results = []
    for document in documents:
        result = score(count_terms(document.id, document.normalized_text), lexicon,
                       document_id=document.id)
        if result.matched_terms == 0 and not keep_unmatched:
            continue
        results.append(result)
    return results


class Scorer:
    """依配置對整批文件套用各詞典評分"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config["processing"].get("scoring", {})
        self.keep_unmatched = self.config.get("keep_unmatched", True)
        self.logger = logging.getLogger("tweet_sentiment.scorer")

    def score_documents(self, documents: List[Document], lexicon: Lexicon) -> List[DocumentScore]:
        results = score_corpus(documents, lexicon, keep_unmatched=self.keep_unmatched)
        matched = sum(1 for result in results if result.matched_terms > 0)
        self.logger.info(
            f"詞典 {lexicon.name}: {len(documents)} 篇文件，{matched} 篇命中詞典"
        )
        return results


class ContextPolarityScorer:
    """
    情境極性評分器

    以整篇文件的詞序計算：每個極性詞取 ±1，依前後視窗內的
    否定詞翻轉正負號、加強詞/減弱詞調整權重，總和再除以 √詞數。
    作為正負分組的參考分數，不依賴單一詞典的詞頻彙總。
    """

    def __init__(self, config: Dict[str, Any], lexicon: Lexicon,
                 modifiers_path: Optional[Path] = None):
        """
        Args:
            config: 完整配置字典，使用processing.scoring.context
            lexicon: 含positive/negative類別的詞典
            modifiers_path: 修飾詞表路徑，預設為內建resources/context_modifiers.yaml
        """
        if lexicon.kind != CATEGORICAL:
            raise ConfigurationError(f"情境極性需要類別型詞典，{lexicon.name} 為 {lexicon.kind}")

        context_config = config["processing"].get("scoring", {}).get("context", {})
        self.lexicon = lexicon
        self.window_before = int(context_config.get("window_before", 4))
        self.window_after = int(context_config.get("window_after", 2))
        self.amplifier_weight = float(context_config.get("amplifier_weight", 0.8))

        modifiers_path = modifiers_path or Path(__file__).with_name("resources") / "context_modifiers.yaml"
        with open(modifiers_path, "r", encoding="utf-8") as f:
            modifiers = yaml.safe_load(f) or {}
        self.negators = frozenset(modifiers.get("negators", []))
        self.amplifiers = frozenset(modifiers.get("amplifiers", []))
        self.deamplifiers = frozenset(modifiers.get("deamplifiers", []))

        self.logger = logging.getLogger("tweet_sentiment.scorer")

    def _polarity_of(self, word: str) -> int:
        category = self.lexicon.lookup(word)
        if category == POSITIVE:
            return 1
        if category == NEGATIVE:
            return -1
        return 0

    def score_text(self, document_id: Any, normalized_text: str) -> DocumentScore:
        words = normalized_text.split() if normalized_text else []
        total = 0.0
        components: Counter = Counter()

        for i, word in enumerate(words):
            sign = self._polarity_of(word)
            if sign == 0:
                continue
            components[POSITIVE if sign > 0 else NEGATIVE] += 1

            start = max(0, i - self.window_before)
            context = words[start:i] + words[i + 1:i + 1 + self.window_after]

            negations = sum(1 for w in context if w in self.negators)
            # 極性詞本身不作為加強詞計算
            amplified = sum(1 for w in context if w in self.amplifiers and self._polarity_of(w) == 0)
            deamplified = sum(1 for w in context if w in self.deamplifiers)

            if negations % 2 == 1:
                sign = -sign
                weight = 1.0 - self.amplifier_weight * (amplified + deamplified)
            else:
                weight = 1.0 + self.amplifier_weight * (amplified - deamplified)

            total += sign * max(weight, 0.0)

        polarity = total / math.sqrt(len(words)) if words else 0.0
        matched = sum(components.values())
        return DocumentScore(
            document_id=document_id,
            lexicon=CONTEXT_LEXICON_NAME,
            polarity=polarity,
            components=dict(components),
            matched_terms=matched,
        )

    def score_documents(self, documents: List[Document]) -> List[DocumentScore]:
        """情境極性對每篇文件都輸出分數（含零分）"""
        return [self.score_text(doc.id, doc.normalized_text) for doc in documents]
