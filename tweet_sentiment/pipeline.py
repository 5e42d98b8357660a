"""
情緒分析管線
整合正規化、斷詞、詞典評分、彙總與品質監控的核心處理器
"""

import logging
import math
import time
from collections import Counter
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from .aggregator import Aggregator, category_totals
from .errors import ConfigurationError, ValidationError
from .lexicon_store import CATEGORICAL, Lexicon, LexiconStore
from .models import Document, DocumentScore, PipelineResult
from .quality_monitor import QualityMonitor
from .scorer import CONTEXT_LEXICON_NAME, ContextPolarityScorer, Scorer
from .text_normalizer import TextNormalizer
from .utils import get_file_stats, read_records, safe_json_save, save_scores_csv


class SentimentPipeline:
    """主要處理器：負責協調 正規化 -> 斷詞 -> 評分 -> 彙總 的整個流程"""

    def __init__(self, config: Dict[str, Any], lexicon_store: Optional[LexiconStore] = None):
        """
        初始化情緒分析管線

        Args:
            config: 完整配置字典
            lexicon_store: 自訂詞典倉庫，None時依配置建立
        """
        self.config = config
        self.processing_config = config["processing"]
        self.paths_config = self.processing_config.get("paths", {})
        self.perf_config = self.processing_config.get("performance", {})
        self.scoring_config = self.processing_config.get("scoring", {})

        self.logger = logging.getLogger("tweet_sentiment.pipeline")

        self.normalizer = TextNormalizer(config)
        self.lexicon_store = lexicon_store or LexiconStore(config)
        self.scorer = Scorer(config)
        self.aggregator = Aggregator(config)
        self.quality_monitor = QualityMonitor(config)

        self.logger.info("SentimentPipeline 初始化完成")

    # ==================== 輸入驗證與正規化 ====================

    def validate_record(self, record: Any, index: int) -> Tuple[Any, Any]:
        """
        驗證單筆輸入紀錄

        Args:
            record: 含id與text的字典
            index: 紀錄在批次中的位置（0起算）

        Returns:
            (document_id, raw_text)；缺少id時以序號(index+1)代替

        Raises:
            ValidationError: 紀錄不是字典、缺少text或text型別錯誤
        """
        if not isinstance(record, Mapping):
            raise ValidationError(f"第 {index} 筆紀錄不是對應表: {type(record).__name__}",
                                  record_index=index)

        text = record.get("text")
        if text is None:
            raise ValidationError(f"第 {index} 筆紀錄缺少text欄位", record_index=index, field="text")
        if not isinstance(text, (str, bytes)):
            raise ValidationError(f"第 {index} 筆紀錄的text不是文字: {type(text).__name__}",
                                  record_index=index, field="text")

        document_id = record.get("id")
        # NaN來自空白的CSV儲存格
        if (document_id is None or document_id == ""
                or (isinstance(document_id, float) and math.isnan(document_id))):
            document_id = index + 1
        return document_id, text

    def ingest(self, records: List[Any],
               show_progress: bool = False) -> Tuple[List[Document], List[Dict[str, Any]]]:
        """
        驗證並正規化整批紀錄

        錯誤紀錄只會被計入丟棄，不會中斷其他紀錄的處理。

        Returns:
            (文件列表, 錯誤紀錄列表)
        """
        chunk_size = max(int(self.perf_config.get("chunk_size", 500)), 1)
        documents: List[Document] = []
        errors: List[Dict[str, Any]] = []

        with tqdm(total=len(records), desc="正規化推文", unit="tweet",
                  disable=not show_progress) as pbar:
            for start in range(0, len(records), chunk_size):
                chunk = records[start:start + chunk_size]
                for offset, record in enumerate(chunk):
                    index = start + offset
                    try:
                        document_id, raw_text = self.validate_record(record, index)
                    except ValidationError as e:
                        self.logger.warning(f"略過無效紀錄: {e}")
                        errors.append(e.to_dict())
                        continue

                    raw = raw_text if isinstance(raw_text, str) else raw_text.decode("utf-8", errors="replace")
                    documents.append(Document(
                        id=document_id,
                        raw_text=raw,
                        normalized_text=self.normalizer.normalize(raw_text),
                    ))
                pbar.update(len(chunk))

        duplicated = [doc_id for doc_id, count in Counter(doc.id for doc in documents).items() if count > 1]
        if duplicated:
            self.logger.warning(f"發現 {len(duplicated)} 個重複的文件id，分組時依文件順序配對分數")

        return documents, errors

    # ==================== 評分 ====================

    def score_all(self, documents: List[Document],
                  lexicon_names: Iterable[str]) -> Dict[str, List[DocumentScore]]:
        """對每個詞典評分；max_workers > 1 時以多執行緒並行"""
        lexicons = self.lexicon_store.load_many(lexicon_names)
        max_workers = int(self.perf_config.get("max_workers", 1))

        if max_workers > 1 and len(lexicons) > 1:
            return self._score_parallel(documents, lexicons, max_workers)

        return {
            name: self.scorer.score_documents(documents, lexicon)
            for name, lexicon in lexicons.items()
        }

    def _score_parallel(self, documents: List[Document],
                        lexicons: Dict[str, Lexicon],
                        max_workers: int) -> Dict[str, List[DocumentScore]]:
        """多執行緒評分，各詞典互不共享可變狀態"""
        results: Dict[str, List[DocumentScore]] = {}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_name = {
                executor.submit(self.scorer.score_documents, documents, lexicon): name
                for name, lexicon in lexicons.items()
            }
            for future in as_completed(future_to_name):
                results[future_to_name[future]] = future.result()

        # 維持詞典順序
        return {name: results[name] for name in lexicons}

    def reference_scores(self, documents: List[Document],
                         scores: Dict[str, List[DocumentScore]],
                         reference: Optional[str] = None) -> List[DocumentScore]:
        """
        取得分組用的參考分數

        Args:
            documents: 文件列表
            scores: 已計算的各詞典分數
            reference: "context" 或詞典名稱，None時使用配置

        Returns:
            參考分數列表
        """
        reference = reference or self.scoring_config.get("reference", CONTEXT_LEXICON_NAME)

        if reference == CONTEXT_LEXICON_NAME:
            context_lexicon_name = self.scoring_config.get("context", {}).get("lexicon", "bing")
            context_scorer = ContextPolarityScorer(self.config, self.lexicon_store.load(context_lexicon_name))
            return context_scorer.score_documents(documents)

        if reference in scores:
            return scores[reference]

        return self.scorer.score_documents(documents, self.lexicon_store.load(reference))

    # ==================== 整合處理函數 ====================

    def run(self, records: List[Any],
            lexicon_names: Optional[List[str]] = None,
            reference: Optional[str] = None,
            association_terms: Optional[List[str]] = None,
            show_progress: bool = False,
            read_errors: Optional[List[Dict[str, Any]]] = None) -> PipelineResult:
        """
        執行完整管線

        Args:
            records: 輸入紀錄列表（至少含text）
            lexicon_names: 要使用的詞典，None時使用配置中啟用的詞典
            reference: 分組參考分數來源
            association_terms: 要計算關聯詞的詞彙
            show_progress: 是否顯示進度條
            read_errors: 讀取階段已丟棄的紀錄（例如無法解析的CSV列）

        Returns:
            PipelineResult
        """
        start_time = time.time()
        self.quality_monitor.reset_stats()

        names = list(lexicon_names) if lexicon_names is not None else self.lexicon_store.enabled()

        documents, errors = self.ingest(records, show_progress=show_progress)
        errors = list(read_errors or []) + errors
        scores = self.score_all(documents, names)

        for name, lexicon_scores in scores.items():
            self.quality_monitor.record_lexicon_coverage(name, lexicon_scores, len(documents))

        reference_scores = self.reference_scores(documents, scores, reference)
        buckets, table = self.aggregator.compare(documents, reference_scores)

        totals = {
            name: category_totals(lexicon_scores)
            for name, lexicon_scores in scores.items()
            if self.lexicon_store.load(name).kind == CATEGORICAL
        }

        processing_time = time.time() - start_time
        self.quality_monitor.monitor_batch(documents, errors, processing_time)

        result = PipelineResult(
            documents=documents,
            scores=scores,
            reference_scores=reference_scores,
            buckets=buckets,
            difference_table=table,
            term_frequencies=self.aggregator.frequencies(documents),
            category_totals=totals,
            associations=self.aggregator.associations(documents, association_terms),
            dropped_count=len(errors),
            errors=errors,
            quality_report=self.quality_monitor.generate_report(),
        )

        self.logger.info(
            f"管線處理完成: {len(records)} 筆紀錄 -> {len(documents)} 篇文件 "
            f"(丟棄 {len(errors)} 筆)，耗時 {processing_time:.2f}秒"
        )
        return result

    def process_file(self,
                     input_file: Path,
                     output_dir: Optional[Path] = None,
                     **run_kwargs) -> Dict[str, Any]:
        """
        處理單個推文CSV檔案並輸出報表

        Args:
            input_file: 輸入CSV路徑
            output_dir: 輸出目錄（預設使用config中的paths.output）
            **run_kwargs: 傳給run()的參數

        Returns:
            處理結果統計
        """
        input_file = Path(input_file)
        output_dir = Path(output_dir or self.paths_config.get("output", "output"))
        self.logger.info(f"開始處理檔案: {input_file}")

        read_errors: List[Dict[str, Any]] = []
        try:
            records = read_records(input_file, errors=read_errors)
        except (FileNotFoundError, ConfigurationError) as e:
            self.logger.error(f"無法載入檔案: {input_file} - {e}")
            return {"error": f"無法載入檔案: {input_file} ({e})"}

        result = self.run(records, read_errors=read_errors, **run_kwargs)

        output_dir.mkdir(parents=True, exist_ok=True)
        written = {}
        for name, lexicon_scores in result.scores.items():
            path = output_dir / f"scores_{name}.csv"
            if save_scores_csv(lexicon_scores, path):
                written[name] = str(path)

        reference_path = output_dir / "scores_reference.csv"
        if save_scores_csv(result.reference_scores, reference_path):
            written["reference"] = str(reference_path)

        report_path = output_dir / "report.json"
        report = result.summary()
        report["input_file"] = str(input_file)
        report["generated_at"] = datetime.now().isoformat()
        report_saved = safe_json_save(report, report_path)

        result_stats = {
            "input_file": str(input_file),
            "report_file": str(report_path) if report_saved else None,
            "score_files": written,
            "input_count": len(records) + len(read_errors),
            "output_count": len(result.documents),
            "dropped_count": result.dropped_count,
            "success": report_saved,
            "quality_report": result.quality_report,
            "file_stats": {
                "input": get_file_stats(input_file),
                "report": get_file_stats(report_path) if report_saved else None
            },
            "generated_at": datetime.now().isoformat(),
        }

        self.logger.info(
            f"檔案處理完成: {input_file} -> {output_dir} "
            f"({len(records)} -> {len(result.documents)} 篇)"
        )
        return result_stats

    def validate_processing_setup(self) -> Dict[str, Any]:
        """驗證處理器設定"""
        validation_results = {
            "directories": {},
            "text_normalizer": self.normalizer.validate_setup(),
            "lexicons": {},
            "sample_processing": {}
        }

        for path_name, path_value in self.paths_config.items():
            path_obj = Path(path_value)
            validation_results["directories"][path_name] = {
                "exists": path_obj.exists(),
                "is_directory": path_obj.is_dir() if path_obj.exists() else False,
            }

        for name in self.lexicon_store.enabled():
            try:
                lexicon = self.lexicon_store.load(name)
                validation_results["lexicons"][name] = {"loaded": True, "size": len(lexicon)}
            except ConfigurationError as e:
                validation_results["lexicons"][name] = {"loaded": False, "error": str(e)}

        sample_records = [
            {"id": "sample1", "text": "RT @trader: #CrudeOil prices surge, great rally! https://t.co/x"},
            {"id": "sample2", "text": "Oil falls on weak demand, terrible week"},
        ]
        try:
            result = self.run(sample_records, lexicon_names=[
                name for name, status in validation_results["lexicons"].items() if status["loaded"]
            ])
            validation_results["sample_processing"] = {
                "success": len(result.documents) == len(sample_records),
                "dropped_count": result.dropped_count,
            }
        except ConfigurationError as e:
            validation_results["sample_processing"] = {"success": False, "error": str(e)}

        return validation_results
