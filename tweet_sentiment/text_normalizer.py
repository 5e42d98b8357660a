"""
文本正規化核心模組
依序執行九個清洗步驟，將推文轉為可供詞典比對的小寫詞串
"""

import re
import string
import unicodedata
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Union

import emoji
import yaml
from spacy.lang.en.stop_words import STOP_WORDS

from .models import Document

RESOURCES_DIR = Path(__file__).with_name("resources")

# 撇號變體，比對縮寫表前統一為ASCII撇號
_APOSTROPHES = str.maketrans({"’": "'", "‘": "'"})


def load_contractions(path: Optional[Path] = None) -> Dict[str, str]:
    """載入縮寫展開對照表"""
    path = path or RESOURCES_DIR / "contractions.yaml"
    with open(path, "r", encoding="utf-8") as f:
        table = yaml.safe_load(f) or {}
    return {str(key).lower(): str(value).lower() for key, value in table.items()}


class TextNormalizer:
    """文本正規化器：純函數、可重複套用（對自身輸出為冪等）"""

    def __init__(self, config: Dict[str, Any]):
        """
        初始化文本正規化器

        Args:
            config: 配置字典，包含text_cleaning相關設定
        """
        self.config = config["processing"]["text_cleaning"]
        self.logger = logging.getLogger("tweet_sentiment.text_normalizer")

        self._compile_patterns()
        self._setup_vocabularies()

        self.logger.info("TextNormalizer 初始化完成")

    def _compile_patterns(self):
        """編譯所有正則表達式模式"""
        marker = self.config.get("retweet_marker", "RT")
        self.retweet_mode = self.config.get("retweet_match", "token")
        if self.retweet_mode not in ("token", "substring"):
            self.logger.warning(f"未知的retweet_match設定 '{self.retweet_mode}'，改用token")
            self.retweet_mode = "token"

        # 錨定在詞首與詞尾，避免刪除 ART、START 等單字中的 RT
        self.retweet_pattern = re.compile(rf"(?<!\w){re.escape(marker)}(?!\w)")
        self.retweet_marker = marker

        self.mention_pattern = re.compile(self.config.get("mention_pattern", r"@\w+"))
        self.url_pattern = re.compile(self.config.get("url_pattern", r"http\S*"))
        self.whitespace_pattern = re.compile(r"\s+")

        punctuation = self.config.get("punctuation") or string.punctuation
        self.punctuation_table = str.maketrans("", "", punctuation)
        self.smart_quote_table = str.maketrans("", "", self.config.get("smart_quote") or "")

        self.logger.debug("正則表達式模式編譯完成")

    def _setup_vocabularies(self):
        """載入縮寫表與停用詞集合"""
        self.contractions = load_contractions() if self.config.get("expand_contractions", True) else {}

        extra_stopwords = {str(word).lower() for word in self.config.get("extra_stopwords", [])}
        if self.config.get("use_standard_stopwords", True):
            self.stopwords: FrozenSet[str] = frozenset(STOP_WORDS) | frozenset(extra_stopwords)
        else:
            self.stopwords = frozenset(extra_stopwords)

        self.logger.debug(
            f"載入 {len(self.contractions)} 個縮寫、{len(self.stopwords)} 個停用詞"
            f"（自訂 {len(extra_stopwords)} 個）"
        )

    # ==================== 正規化步驟 ====================

    def step0_repair_encoding(self, raw: Union[str, bytes, None]) -> str:
        """
        步驟0: 修復編碼並處理Emoji

        位元組以UTF-8解碼並替換無效字元；孤立代理字元同樣替換；
        最後做NFKC正規化。任何異常都降級為替換，不會失敗。
        """
        if raw is None:
            return ""
        if isinstance(raw, bytes):
            text = raw.decode("utf-8", errors="replace")
        elif isinstance(raw, str):
            text = raw
        else:
            text = str(raw)

        text = text.encode("utf-8", errors="replace").decode("utf-8")
        text = text.replace("\ufffd", " ")
        text = unicodedata.normalize("NFKC", text)

        mode = self.config.get("emoji_mode", "strip")
        if mode == "strip":
            text = emoji.replace_emoji(text, replace=" ")
        elif mode == "demojize":
            text = emoji.replace_emoji(text, replace=_emoji_to_words)

        return text

    def step1_strip_retweet_marker(self, text: str) -> str:
        """步驟1: 移除轉推標記（預設僅移除獨立的RT詞）"""
        if self.retweet_mode == "substring":
            return text.replace(self.retweet_marker, "")
        return self.retweet_pattern.sub(" ", text)

    def step2_remove_mentions(self, text: str) -> str:
        """步驟2: 移除@帳號"""
        return self.mention_pattern.sub(" ", text)

    def step3_lowercase(self, text: str) -> str:
        return text.lower()

    def step4_strip_punctuation(self, text: str) -> str:
        """步驟4: 移除標點（直接刪除，不以空白取代）"""
        return text.translate(self.punctuation_table)

    def step5_strip_smart_quote(self, text: str) -> str:
        """步驟5: 移除彎引號（smart_quote中的每個字元）"""
        return text.translate(self.smart_quote_table)

    def step6_remove_urls(self, text: str) -> str:
        """步驟6: 移除以http開頭的連結殘段"""
        return self.url_pattern.sub(" ", text)

    def step7_expand_contractions(self, text: str) -> str:
        """
        步驟7: 展開縮寫

        Args:
            text: 已小寫化的文本

        Returns:
            展開後的文本，例如 "dont" -> "do not"
        """
        if not self.contractions:
            return text

        expanded = []
        for token in text.split():
            key = token.translate(_APOSTROPHES)
            expanded.append(self.contractions.get(key, token))
        return " ".join(expanded)

    def step8_remove_stopwords(self, text: str) -> str:
        """步驟8: 移除停用詞（標準英文停用詞 ∪ 自訂詞彙）"""
        return " ".join(token for token in text.split() if token not in self.stopwords)

    def step9_collapse_whitespace(self, text: str) -> str:
        return self.whitespace_pattern.sub(" ", text).strip()

    # ==================== 整合處理函數 ====================

    def normalize(self, raw: Union[str, bytes, None]) -> str:
        """
        完整的正規化流程

        Args:
            raw: 原始推文文本

        Returns:
            正規化後的文本，無內容時為空字串
        """
        text = self.step0_repair_encoding(raw)
        text = self.step1_strip_retweet_marker(text)
        text = self.step2_remove_mentions(text)
        text = self.step3_lowercase(text)
        text = self.step4_strip_punctuation(text)
        text = self.step5_strip_smart_quote(text)
        text = self.step6_remove_urls(text)
        text = self.step7_expand_contractions(text)
        text = self.step8_remove_stopwords(text)
        return self.step9_collapse_whitespace(text)

    def normalize_document(self, document: Document) -> Document:
        """回傳填入normalized_text的新Document"""
        return replace(document, normalized_text=self.normalize(document.raw_text))

    def batch_normalize(self, texts: List[str]) -> List[str]:
        return [self.normalize(text) for text in texts]

    # ==================== 驗證和統計 ====================

    def validate_setup(self) -> Dict[str, bool]:
        """驗證正規化器設定是否正確"""
        test_cases = [
            ("RT @trader: Oil prices RISE!", "rt" not in self.normalize("RT @trader: Oil prices RISE!").split()),
            ("Check https://t.co/abc now", "http" not in self.normalize("Check https://t.co/abc now")),
            ("The ART of trading", "art" in self.normalize("The ART of trading").split()),
            ("“Brent” surges", "“" not in self.normalize("“Brent” surges")),
        ]

        results = {}
        for i, (sample, passed) in enumerate(test_cases, 1):
            results[f"test_case_{i}"] = passed
            once = self.normalize(sample)
            results[f"idempotent_{i}"] = self.normalize(once) == once

        self.logger.info("設定驗證完成")
        return results

    def get_stats(self) -> Dict[str, Any]:
        """取得正規化器統計資訊"""
        return {
            "retweet_match": self.retweet_mode,
            "emoji_mode": self.config.get("emoji_mode", "strip"),
            "contractions_count": len(self.contractions),
            "stopwords_count": len(self.stopwords),
            "custom_stopwords_count": len(self.config.get("extra_stopwords", [])),
        }


def _emoji_to_words(chars: str, data: Dict[str, Any]) -> str:
    """將emoji轉為以空白分隔的英文描述，如 :fire: -> fire"""
    name = data.get("en", "").strip(":").replace("_", " ")
    return f" {name} "
