#!/usr/bin/env python3
"""
推文情緒分析主程式
讀取推文CSV，正規化後以多個詞典評分，輸出分數表與比較報表

使用方法:
    python analyze_tweets.py --help                           # 顯示幫助
    python analyze_tweets.py --input tweets.csv               # 分析推文
    python analyze_tweets.py --input tweets.csv --lexicons bing afinn
    python analyze_tweets.py --validate                       # 驗證設定
"""

import argparse
import sys
from pathlib import Path

# 添加項目根目錄到Python路徑
sys.path.insert(0, str(Path(__file__).parent))

from tweet_sentiment import load_config, setup_logging, SentimentPipeline
from tweet_sentiment.errors import ConfigurationError


def setup_argument_parser() -> argparse.ArgumentParser:
    """設定命令行參數解析器"""
    parser = argparse.ArgumentParser(
        description="推文情緒分析工具 - 詞典評分與正負詞彙比較",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
範例用法:
  python analyze_tweets.py --input tweets.csv                       # 使用預設詞典分析
  python analyze_tweets.py --input tweets.csv --reference bing      # 以bing分數分組
  python analyze_tweets.py --input tweets.csv --associate trump fed # 關聯詞統計
  python analyze_tweets.py --input tweets.csv --workers 3           # 詞典並行評分
  python analyze_tweets.py --validate                               # 驗證系統設定

分數表與報表將儲存到 output/ 目錄
        """
    )

    main_group = parser.add_mutually_exclusive_group(required=True)
    main_group.add_argument(
        "--input",
        type=str,
        metavar="CSV",
        help="推文CSV檔案（需含text欄位，id欄位可選）"
    )
    main_group.add_argument(
        "--validate",
        action="store_true",
        help="驗證系統設定與詞典"
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="配置檔案路徑 (預設: 套件內建 tweet_sentiment/config.yaml)"
    )
    parser.add_argument(
        "--lexicons",
        nargs="+",
        metavar="NAME",
        help="使用的詞典名稱（覆蓋配置檔案設定）"
    )
    parser.add_argument(
        "--reference",
        type=str,
        help="分組參考分數: context 或詞典名稱"
    )
    parser.add_argument(
        "--top-k",
        type=int,
        help="差異表列數（覆蓋配置檔案設定）"
    )
    parser.add_argument(
        "--associate",
        nargs="+",
        metavar="TERM",
        help="計算與這些詞同時出現的詞彙"
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="並行評分執行緒數量 (覆蓋配置檔案設定)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        help="自訂輸出目錄（覆蓋配置檔案設定）"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="顯示詳細日誌"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="只顯示錯誤訊息"
    )

    return parser


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """依命令行參數調整配置"""
    if args.workers:
        config["processing"]["performance"]["max_workers"] = args.workers

    if args.output_dir:
        config["processing"]["paths"]["output"] = args.output_dir

    if args.top_k is not None:
        config["processing"]["comparison"]["top_k"] = args.top_k

    if args.lexicons:
        config["processing"]["lexicons"]["enabled"] = args.lexicons

    if args.reference:
        config["processing"]["scoring"]["reference"] = args.reference

    if args.associate:
        config["processing"]["comparison"]["association_terms"] = args.associate

    if args.verbose:
        config["logging"]["level"] = "DEBUG"
    elif args.quiet:
        config["logging"]["level"] = "ERROR"

    return config


def display_processing_header():
    """顯示處理開始的標題"""
    print("\n" + "="*70)
    print("🛢️  推文情緒分析系統")
    print("="*70)
    print("📋 處理流程:")
    print("   1️⃣  移除RT標記與@帳號")
    print("   2️⃣  小寫化、移除標點/引號/連結")
    print("   3️⃣  展開縮寫、移除停用詞")
    print("   4️⃣  詞典評分（bing / afinn / loughran）")
    print("   5️⃣  正負分組與共同詞彙差異排名")
    print("="*70)


def display_results_summary(results: dict):
    """顯示處理結果摘要"""
    if "error" in results:
        print(f"\n❌ 處理失敗: {results['error']}")
        return

    print(f"\n📊 處理完成摘要:")
    print(f"   📝 推文數量: {results.get('input_count', 0):,} → {results.get('output_count', 0):,}")
    print(f"   🗑️  丟棄紀錄: {results.get('dropped_count', 0):,}")

    for name, path in results.get("score_files", {}).items():
        print(f"   📁 {name}: {path}")

    if results.get("report_file"):
        print(f"   📄 報表: {results['report_file']}")


def main():
    """主程式入口"""
    parser = setup_argument_parser()
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigurationError) as e:
        print(f"❌ 配置檔案載入失敗: {e}")
        sys.exit(1)

    config = apply_overrides(config, args)
    logger = setup_logging(config)

    try:
        pipeline = SentimentPipeline(config)
    except ConfigurationError as e:
        print(f"❌ 處理器初始化失敗: {e}")
        sys.exit(1)

    if args.validate:
        print("🔍 系統驗證模式")
        validation_results = pipeline.validate_processing_setup()

        print("\n📋 系統驗證結果:")
        for name, status in validation_results["directories"].items():
            icon = "✅" if status["exists"] and status["is_directory"] else "⚠️"
            print(f"   {icon} {name}: {status}")

        checks = validation_results["text_normalizer"]
        passed = sum(1 for v in checks.values() if v is True)
        print(f"   {'✅' if passed == len(checks) else '❌'} 文本正規化器: {passed}/{len(checks)} 測試通過")

        for name, status in validation_results["lexicons"].items():
            if status["loaded"]:
                print(f"   ✅ 詞典 {name}: {status['size']} 個詞彙")
            else:
                print(f"   ❌ 詞典 {name}: {status['error']}")

        sample = validation_results["sample_processing"]
        if sample.get("success"):
            print("   ✅ 樣本處理: 成功")
        else:
            print(f"   ❌ 樣本處理: {sample.get('error', '失敗')}")

        print("\n🎉 系統驗證完成!")
        return

    display_processing_header()

    try:
        results = pipeline.process_file(Path(args.input), show_progress=not args.quiet)
    except ConfigurationError as e:
        print(f"\n❌ 設定錯誤: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n⚠️ 處理被用戶中斷")
        sys.exit(1)

    display_results_summary(results)
    if "error" in results:
        sys.exit(1)

    pipeline.quality_monitor.print_summary()
    logger.debug("處理統計: %s", results.get("file_stats"))
    print("\n🎉 所有任務完成!")


if __name__ == "__main__":
    main()
