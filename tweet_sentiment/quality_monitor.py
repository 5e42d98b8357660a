"""
資料品質監控模組
監控管線處理過程中的品質指標，並生成品質報告
"""

import logging
import statistics
from typing import Dict, List, Any
from datetime import datetime
from collections import Counter, defaultdict
from pathlib import Path

from .models import Document, DocumentScore
from .utils import safe_json_save


class QualityMonitor:
    """資料品質監控器：追蹤丟棄數、空文本比例與詞典覆蓋率"""

    def __init__(self, config: Dict[str, Any]):
        """
        初始化品質監控器

        Args:
            config: 配置字典
        """
        self.config = config
        self.quality_config = config["processing"].get("quality_checks", {})
        self.logger = logging.getLogger("tweet_sentiment.quality_monitor")

        self.reset_stats()

        self.logger.info("QualityMonitor 初始化完成")

    def reset_stats(self):
        """重置統計數據"""
        self.stats = {
            "total_records": 0,
            "accepted": 0,
            "dropped": 0,
            "empty_after_normalization": 0,
            "text_length_distribution": defaultdict(int),
            "token_count_distribution": defaultdict(int),
            "quality_issues": {
                "too_short": 0,
                "too_long": 0,
            },
            "drop_reasons": Counter(),
            "lexicon_coverage": {},
            "processing_times": []
        }

    def monitor_batch(self,
                      documents: List[Document],
                      errors: List[Dict[str, Any]],
                      processing_time: float) -> Dict[str, Any]:
        """
        監控一個批次的處理結果

        Args:
            documents: 通過驗證並已正規化的文件
            errors: 驗證錯誤紀錄（每筆對應一個被丟棄的紀錄）
            processing_time: 處理時間（秒）

        Returns:
            批次品質報告
        """
        batch_size = len(documents) + len(errors)
        self.stats["total_records"] += batch_size
        self.stats["accepted"] += len(documents)
        self.stats["dropped"] += len(errors)
        self.stats["processing_times"].append(processing_time)

        for error in errors:
            self.stats["drop_reasons"][error.get("field") or "unknown"] += 1

        empty = 0
        for document in documents:
            if self._analyze_document(document):
                empty += 1

        batch_stats = {
            "batch_size": batch_size,
            "accepted_rate": len(documents) / batch_size if batch_size else 0,
            "dropped_rate": len(errors) / batch_size if batch_size else 0,
            "empty_rate": empty / len(documents) if documents else 0,
            "processing_time": processing_time,
        }

        return {
            "batch_stats": batch_stats,
            "quality_alerts": self._check_quality_thresholds(batch_stats)
        }

    def _analyze_document(self, document: Document) -> bool:
        """分析單篇文件，回傳是否正規化後為空"""
        original_length = len(document.raw_text)
        token_count = len(document.normalized_text.split())

        self.stats["text_length_distribution"][self._categorize_length(original_length)] += 1
        self.stats["token_count_distribution"][self._categorize_token_count(token_count)] += 1

        if original_length < self.quality_config.get("min_text_length", 10):
            self.stats["quality_issues"]["too_short"] += 1
        elif original_length > self.quality_config.get("max_text_length", 500):
            self.stats["quality_issues"]["too_long"] += 1

        if token_count == 0:
            self.stats["empty_after_normalization"] += 1
            return True
        return False

    def record_lexicon_coverage(self, lexicon_name: str,
                                scores: List[DocumentScore],
                                document_count: int) -> float:
        """記錄詞典命中率（至少命中一個詞的文件比例）"""
        matched = sum(1 for score in scores if score.matched_terms > 0)
        coverage = matched / document_count if document_count else 0.0
        self.stats["lexicon_coverage"][lexicon_name] = {
            "matched_documents": matched,
            "coverage": coverage,
        }

        threshold = self.quality_config.get("min_lexicon_coverage", 0.1)
        if document_count and coverage < threshold:
            self.logger.warning(
                f"詞典 {lexicon_name} 覆蓋率偏低: {coverage:.2%} (閾值: {threshold:.2%})"
            )
        return coverage

    def _categorize_length(self, length: int) -> str:
        """將文本長度分類"""
        if length < 50:
            return "very_short"
        elif length < 100:
            return "short"
        elif length < 200:
            return "medium"
        elif length < 300:
            return "long"
        else:
            return "very_long"

    def _categorize_token_count(self, count: int) -> str:
        if count == 0:
            return "empty"
        elif count < 5:
            return "very_few"
        elif count < 10:
            return "few"
        elif count < 20:
            return "medium"
        else:
            return "many"

    def _check_quality_thresholds(self, batch_stats: Dict[str, Any]) -> List[str]:
        """檢查品質閾值，生成警告"""
        alerts = []

        if batch_stats["dropped_rate"] > 0.2:
            alerts.append(
                f"高丟棄比例警告: {batch_stats['dropped_rate']:.2%} (建議 < 20%)"
            )

        if batch_stats["empty_rate"] > 0.1:
            alerts.append(
                f"正規化後空文本比例警告: {batch_stats['empty_rate']:.2%} (建議 < 10%)"
            )

        return alerts

    def generate_report(self) -> Dict[str, Any]:
        """生成完整的品質報告"""
        total = self.stats["total_records"]
        if total == 0:
            return {
                "generated_at": datetime.now().isoformat(),
                "overall_statistics": {"total_records": 0, "dropped": 0},
                "recommendations": ["尚未處理任何資料"],
            }

        accepted = self.stats["accepted"]
        overall_stats = {
            "total_records": total,
            "accepted": accepted,
            "dropped": self.stats["dropped"],
            "accepted_rate": accepted / total,
            "dropped_rate": self.stats["dropped"] / total,
            "empty_after_normalization_rate":
                self.stats["empty_after_normalization"] / accepted if accepted else 0,
        }

        performance_stats = {}
        times = self.stats["processing_times"]
        if times:
            performance_stats = {
                "total_batches": len(times),
                "total_processing_time": sum(times),
                "avg_batch_time": statistics.mean(times),
                "max_batch_time": max(times),
            }

        quality_analysis = {
            "text_length_distribution": dict(self.stats["text_length_distribution"]),
            "token_count_distribution": dict(self.stats["token_count_distribution"]),
            "quality_issues_summary": dict(self.stats["quality_issues"]),
            "drop_reasons": dict(self.stats["drop_reasons"]),
            "lexicon_coverage": dict(self.stats["lexicon_coverage"]),
        }

        return {
            "generated_at": datetime.now().isoformat(),
            "overall_statistics": overall_stats,
            "performance_statistics": performance_stats,
            "quality_analysis": quality_analysis,
            "recommendations": self._generate_recommendations(overall_stats),
            "config_used": self.quality_config
        }

    def _generate_recommendations(self, overall_stats: Dict[str, Any]) -> List[str]:
        """生成改進建議"""
        recommendations = []

        if overall_stats["dropped_rate"] > 0.05:
            recommendations.append(
                f"丟棄比例較高 ({overall_stats['dropped_rate']:.2%})，"
                "建議檢查輸入CSV的text欄位"
            )

        if overall_stats["empty_after_normalization_rate"] > 0.1:
            recommendations.append(
                f"正規化後空內容比例較高 ({overall_stats['empty_after_normalization_rate']:.2%})，"
                "建議調整停用詞設定"
            )

        threshold = self.quality_config.get("min_lexicon_coverage", 0.1)
        for name, coverage in self.stats["lexicon_coverage"].items():
            if coverage["coverage"] < threshold:
                recommendations.append(f"詞典 {name} 覆蓋率偏低 ({coverage['coverage']:.2%})")

        if not recommendations:
            recommendations.append("資料品質良好，無需特別調整")

        return recommendations

    def save_report(self, output_path: Path) -> bool:
        """儲存品質報告到檔案"""
        success = safe_json_save(self.generate_report(), output_path)
        if success:
            self.logger.info(f"品質報告已儲存至: {output_path}")
        return success

    def print_summary(self):
        """打印簡要統計摘要"""
        total = self.stats["total_records"]
        if total == 0:
            print("尚未處理任何資料")
            return

        print("\n" + "="*50)
        print("📊 情緒分析品質摘要")
        print("="*50)
        print(f"總紀錄數量: {total:,}")
        print(f"有效文件: {self.stats['accepted']:,} ({self.stats['accepted']/total:.2%})")
        print(f"丟棄紀錄: {self.stats['dropped']:,} ({self.stats['dropped']/total:.2%})")
        print(f"正規化後為空: {self.stats['empty_after_normalization']:,}")

        if self.stats["lexicon_coverage"]:
            print("\n📚 詞典覆蓋率:")
            for name, coverage in self.stats["lexicon_coverage"].items():
                print(f"  {name}: {coverage['coverage']:.2%}")
