"""
情緒詞典模組
載入並快取 詞彙 -> 極性單位 的對照表（類別型或數值型）
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import pandas as pd

from .errors import ConfigurationError
from .models import LexiconEntry, PolarityUnit

CATEGORICAL = "categorical"
NUMERIC = "numeric"

LAST_WRITE_WINS = "last_write_wins"
REJECT = "reject"

LEXICON_DIR = Path(__file__).with_name("resources") / "lexicons"

# 套件內建詞典
BUNDLED_LEXICONS: Dict[str, Dict[str, Any]] = {
    "bing": {
        "path": LEXICON_DIR / "bing.csv",
        "kind": CATEGORICAL,
        "term_column": "word",
        "value_column": "sentiment",
    },
    "afinn": {
        "path": LEXICON_DIR / "afinn.csv",
        "kind": NUMERIC,
        "term_column": "word",
        "value_column": "value",
    },
    "loughran": {
        "path": LEXICON_DIR / "loughran.csv",
        "kind": CATEGORICAL,
        "term_column": "word",
        "value_column": "sentiment",
    },
}


class Lexicon(Mapping):
    """不可變的情緒詞典；查無詞彙時回傳None而非拋出例外"""

    def __init__(self, name: str, kind: str, entries: Dict[str, PolarityUnit]):
        if kind not in (CATEGORICAL, NUMERIC):
            raise ConfigurationError(f"未知的詞典類型 '{kind}': {name}")
        self.name = name
        self.kind = kind
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, term: str) -> PolarityUnit:
        return self._entries[term]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self):
        return f"Lexicon(name={self.name!r}, kind={self.kind!r}, size={len(self)})"

    def lookup(self, term: str) -> Optional[PolarityUnit]:
        return self._entries.get(term)

    @property
    def categories(self) -> List[str]:
        """類別型詞典中出現的所有類別（排序後）"""
        if self.kind != CATEGORICAL:
            return []
        return sorted(set(self._entries.values()))

    def entries(self) -> List[LexiconEntry]:
        return [LexiconEntry(term, unit) for term, unit in self._entries.items()]

    @classmethod
    def from_entries(cls,
                     name: str,
                     entries: Iterable[Union[LexiconEntry, Tuple[str, PolarityUnit]]],
                     duplicate_policy: str = LAST_WRITE_WINS,
                     kind: Optional[str] = None) -> "Lexicon":
        """
        由詞條序列建立詞典

        Args:
            name: 詞典名稱
            entries: LexiconEntry 或 (term, polarity_unit) 序列，依序載入
            duplicate_policy: last_write_wins（後者覆蓋前者）或 reject
            kind: 詞典類型，None時由數值型別推斷

        Returns:
            Lexicon

        Raises:
            ConfigurationError: 重複詞彙（reject政策）、類型混雜或數值無效
        """
        if duplicate_policy not in (LAST_WRITE_WINS, REJECT):
            raise ConfigurationError(f"未知的重複詞彙政策 '{duplicate_policy}'")

        logger = logging.getLogger("tweet_sentiment.lexicon_store")
        table: Dict[str, PolarityUnit] = {}
        duplicates = 0

        for entry in entries:
            term, unit = (entry.term, entry.polarity_unit) if isinstance(entry, LexiconEntry) else entry
            term = str(term).strip().lower()
            if not term:
                raise ConfigurationError(f"詞典 {name} 含有空白詞彙")

            unit = _coerce_unit(name, term, unit, kind)
            if term in table:
                duplicates += 1
                if duplicate_policy == REJECT:
                    raise ConfigurationError(f"詞典 {name} 含有重複詞彙: {term}")
                logger.debug(f"詞典 {name} 重複詞彙 '{term}': {table[term]!r} -> {unit!r}")
            table[term] = unit

        resolved_kind = kind or _infer_kind(name, table.values())

        if duplicates:
            logger.info(f"詞典 {name} 共有 {duplicates} 個重複詞彙，採後者覆蓋")

        return cls(name, resolved_kind, table)


def _coerce_unit(name: str, term: str, unit: Any, kind: Optional[str]) -> PolarityUnit:
    """將原始值轉為類別標籤或整數強度"""
    if kind == NUMERIC or (kind is None and isinstance(unit, int) and not isinstance(unit, bool)):
        try:
            return int(str(unit).strip())
        except ValueError:
            raise ConfigurationError(f"詞典 {name} 詞彙 '{term}' 的數值無效: {unit!r}")

    if not isinstance(unit, str) or not unit.strip():
        raise ConfigurationError(f"詞典 {name} 詞彙 '{term}' 的類別無效: {unit!r}")
    return unit.strip().lower()


def _infer_kind(name: str, units: Iterable[PolarityUnit]) -> str:
    kinds = {NUMERIC if isinstance(unit, int) else CATEGORICAL for unit in units}
    if len(kinds) > 1:
        raise ConfigurationError(f"詞典 {name} 同時含有類別與數值極性")
    return kinds.pop() if kinds else CATEGORICAL


class LexiconStore:
    """詞典倉庫：依名稱載入並快取詞典"""

    def __init__(self, config: Dict[str, Any]):
        """
        初始化詞典倉庫

        Args:
            config: 完整配置字典，使用processing.lexicons設定
        """
        self.config = config["processing"].get("lexicons", {})
        self.duplicate_policy = self.config.get("duplicate_policy", LAST_WRITE_WINS)
        self.logger = logging.getLogger("tweet_sentiment.lexicon_store")

        self.sources: Dict[str, Dict[str, Any]] = {
            name: dict(source) for name, source in BUNDLED_LEXICONS.items()
        }
        for name, source in (self.config.get("sources") or {}).items():
            if not isinstance(source, dict) or "path" not in source:
                raise ConfigurationError(f"自訂詞典 {name} 缺少path設定")
            self.sources[name] = {
                "path": Path(source["path"]),
                "kind": source.get("kind", CATEGORICAL),
                "term_column": source.get("term_column", "word"),
                "value_column": source.get("value_column",
                                           "value" if source.get("kind") == NUMERIC else "sentiment"),
            }

        self._cache: Dict[str, Lexicon] = {}
        self.logger.info(f"LexiconStore 初始化完成，可用詞典: {', '.join(self.available())}")

    def available(self) -> List[str]:
        return sorted(self.sources)

    def enabled(self) -> List[str]:
        """配置中啟用的詞典名稱"""
        enabled = self.config.get("enabled")
        if enabled is None:
            return self.available()
        return list(enabled)

    def register(self, lexicon: Lexicon):
        """註冊程式建立的詞典（覆蓋同名來源）"""
        self._cache[lexicon.name] = lexicon
        self.sources.setdefault(lexicon.name, {"path": None, "kind": lexicon.kind})

    def load(self, name: str) -> Lexicon:
        """
        依名稱載入詞典

        Raises:
            ConfigurationError: 未知詞典名稱或詞典表格式錯誤
        """
        if name in self._cache:
            return self._cache[name]

        source = self.sources.get(name)
        if source is None or source.get("path") is None:
            raise ConfigurationError(
                f"未知的詞典名稱: {name}（可用: {', '.join(self.available())}）"
            )

        lexicon = self._read_table(name, source)
        self._cache[name] = lexicon
        self.logger.info(f"詞典 {name} 載入完成: {len(lexicon)} 個詞彙 ({lexicon.kind})")
        return lexicon

    def load_many(self, names: Iterable[str]) -> Dict[str, Lexicon]:
        return {name: self.load(name) for name in names}

    def _read_table(self, name: str, source: Dict[str, Any]) -> Lexicon:
        path = Path(source["path"])
        term_column = source["term_column"]
        value_column = source["value_column"]

        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False, comment="#")
        except FileNotFoundError:
            raise ConfigurationError(f"詞典檔案不存在: {path}")
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"詞典檔案格式錯誤 {path}: {e}")

        missing = [col for col in (term_column, value_column) if col not in df.columns]
        if missing:
            raise ConfigurationError(f"詞典 {name} 缺少欄位: {missing}")

        return Lexicon.from_entries(
            name,
            zip(df[term_column].tolist(), df[value_column].tolist()),
            duplicate_policy=self.duplicate_policy,
            kind=source["kind"],
        )
