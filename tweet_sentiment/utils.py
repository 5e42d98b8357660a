"""
共用工具函數
配置載入、日誌設定、CSV讀取與報表輸出等基礎功能
"""

import copy
import yaml
import logging
import logging.handlers
from pathlib import Path
from typing import Dict, Any, Iterable, List, Optional, Union
import orjson
import pandas as pd
from datetime import datetime

from .errors import ConfigurationError, ValidationError

DEFAULT_CONFIG_PATH = Path(__file__).with_name("config.yaml")


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    載入YAML配置文件

    自訂配置檔會覆蓋在預設配置之上，因此只需寫出要修改的欄位。

    Args:
        config_path: 配置檔路徑，None表示使用套件內建的config.yaml

    Returns:
        完整配置字典
    """
    defaults = _read_yaml(DEFAULT_CONFIG_PATH)
    if config_path is None or Path(config_path).resolve() == DEFAULT_CONFIG_PATH.resolve():
        return defaults

    user_config = _read_yaml(Path(config_path))
    _resolve_lexicon_paths(user_config, Path(config_path).resolve().parent)
    return merge_config(defaults, user_config)


def default_config() -> Dict[str, Any]:
    return load_config(None)


def _resolve_lexicon_paths(config: Dict[str, Any], base_dir: Path):
    """自訂詞典的相對路徑以配置檔所在目錄為基準"""
    processing = config.get("processing")
    if not isinstance(processing, dict):
        return
    lexicons = processing.get("lexicons")
    if not isinstance(lexicons, dict):
        return
    for source in (lexicons.get("sources") or {}).values():
        if isinstance(source, dict) and source.get("path") and not Path(source["path"]).is_absolute():
            source["path"] = str(base_dir / source["path"])


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"配置文件未找到: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"配置文件格式錯誤: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"配置文件頂層必須是對應表: {config_path}")
    return config


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """遞迴合併配置，override優先"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def setup_logging(config: Dict[str, Any]) -> logging.Logger:
    """設定日誌系統"""
    log_config = config.get("logging", {})

    # 創建logs目錄
    log_dir = Path(config["processing"]["paths"]["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    logger = logging.getLogger("tweet_sentiment")
    logger.setLevel(getattr(logging, log_config.get("level", "INFO")))

    # 清除既有的handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_file = log_dir / f"tweet_sentiment_{datetime.now().strftime('%Y%m%d')}.log"
    if log_config.get("file_rotation", True):
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=_parse_size(log_config.get("max_file_size", "10MB")),
            backupCount=log_config.get("backup_count", 5),
            encoding="utf-8"
        )
    else:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")

    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


def _parse_size(size_str: str) -> int:
    """解析檔案大小字串 (如 '10MB') 為位元組數"""
    size_str = str(size_str).upper().strip()
    if size_str.endswith('KB'):
        return int(size_str[:-2]) * 1024
    elif size_str.endswith('MB'):
        return int(size_str[:-2]) * 1024 * 1024
    elif size_str.endswith('GB'):
        return int(size_str[:-2]) * 1024 * 1024 * 1024
    else:
        return int(size_str)


def read_records(csv_path: Path, id_column: str = "id",
                 text_column: str = "text",
                 errors: Optional[List[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """
    讀取推文CSV為紀錄列表

    缺少id欄位或id為空白時以列序號代替；text欄位缺失的列仍會保留，
    交由管線驗證並計入丟棄數。欄位數過多的列會被略過，
    並以ValidationError字典加入errors。

    Args:
        csv_path: CSV檔案路徑
        id_column: 文件識別欄位名稱
        text_column: 文本欄位名稱
        errors: 收集無法解析列的列表，None時只記錄日誌

    Returns:
        [{"id": ..., "text": ...}, ...]，空檔案回傳空列表
    """
    logger = logging.getLogger("tweet_sentiment.utils")
    bad_lines: List[Dict[str, Any]] = []

    def skip_bad_line(fields: List[str]) -> None:
        error = ValidationError(f"CSV列欄位數錯誤（{len(fields)} 個欄位）: {fields}", field="row")
        logger.warning(f"略過無法解析的列: {error}")
        bad_lines.append(error.to_dict())
        return None

    try:
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, na_values=[""],
                         encoding_errors="replace", engine="python", on_bad_lines=skip_bad_line)
    except pd.errors.EmptyDataError:
        logger.warning(f"CSV檔案沒有內容: {csv_path}")
        return []
    except pd.errors.ParserError as e:
        raise ConfigurationError(f"CSV格式錯誤: {csv_path} - {e}")

    if errors is not None:
        errors.extend(bad_lines)

    if text_column not in df.columns:
        raise ConfigurationError(f"CSV缺少文本欄位 '{text_column}': {csv_path}")

    if id_column not in df.columns:
        logger.warning(f"CSV缺少 '{id_column}' 欄位，改用列序號: {csv_path}")
        ids = [None] * len(df)
    else:
        ids = [None if pd.isna(doc_id) else doc_id for doc_id in df[id_column].tolist()]

    records = []
    for position, (doc_id, text) in enumerate(zip(ids, df[text_column].tolist()), 1):
        records.append({
            "id": position if doc_id is None else doc_id,
            "text": None if pd.isna(text) else text,
        })
    return records


def safe_json_save(data: Any, file_path: Path) -> bool:
    """安全儲存JSON檔案"""
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "wb") as f:
            f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS))
        return True
    except (OSError, TypeError, orjson.JSONEncodeError) as e:
        logging.getLogger("tweet_sentiment.utils").error(f"JSON儲存錯誤 {file_path}: {e}")
        return False


def save_scores_csv(scores: Iterable, file_path: Path) -> bool:
    """將DocumentScore列表展開類別欄位後存為CSV"""
    rows = []
    for score in scores:
        row = {
            "document_id": score.document_id,
            "lexicon": score.lexicon,
            "polarity": score.polarity,
            "matched_terms": score.matched_terms,
        }
        row.update(score.components)
        rows.append(row)

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        df = pd.DataFrame(rows, columns=None if rows else
                          ["document_id", "lexicon", "polarity", "matched_terms"])
        df.fillna(0).to_csv(file_path, index=False)
        return True
    except OSError as e:
        logging.getLogger("tweet_sentiment.utils").error(f"CSV儲存錯誤 {file_path}: {e}")
        return False


def get_file_stats(file_path: Path) -> Dict[str, Any]:
    """取得檔案基本統計資訊"""
    if not file_path.exists():
        return {"exists": False}

    stat = file_path.stat()
    return {
        "exists": True,
        "size_bytes": stat.st_size,
        "size_mb": round(stat.st_size / (1024 * 1024), 2),
        "modified_time": datetime.fromtimestamp(stat.st_mtime).isoformat(),
    }
