"""
錯誤類型定義
設定錯誤與輸入資料驗證錯誤
"""

from typing import Optional


class PipelineError(Exception):
    """情緒分析管線的基礎錯誤"""


class ConfigurationError(PipelineError, ValueError):
    """設定錯誤：未知的詞典名稱、格式錯誤的詞典表或配置檔"""


class ValidationError(PipelineError):
    """輸入紀錄驗證失敗（例如缺少text欄位）"""

    def __init__(self, message: str, record_index: Optional[int] = None,
                 field: Optional[str] = None):
        super().__init__(message)
        self.record_index = record_index
        self.field = field

    def to_dict(self):
        return {
            "record_index": self.record_index,
            "field": self.field,
            "error": str(self),
        }
