#!/usr/bin/env python3
"""
Danmaku Processor - メインスクリプト

bilibili形式の弾幕XML（またはbilibiliの動画・番組）からASS字幕を生成するツール
"""

import os
import sys
import glob
import argparse
from pathlib import Path

# モジュールパスを追加
sys.path.insert(0, str(Path(__file__).parent))

from danmaku_processor.steps.step0_config import (
    load_config_from_file,
    create_sample_config,
    parse_deny_list,
    ConvertConfig
)
from danmaku_processor.steps.step1_input_type import (
    parse_input_type,
    FileInput,
    FolderInput
)
from danmaku_processor.steps.step2_fetch_danmaku import fetch_danmaku
from danmaku_processor.steps.step5_generate_ass import generate_ass_from_file
from danmaku_processor.constants import (
    DEFAULT_SCREEN_WIDTH,
    DEFAULT_SCREEN_HEIGHT,
    DEFAULT_DURATION,
    DEFAULT_LANE_SIZE,
    DEFAULT_FLOAT_PERCENTAGE,
    DEFAULT_WIDTH_RATIO,
    DEFAULT_HORIZONTAL_GAP,
    DEFAULT_TIME_OFFSET,
    DEFAULT_FONT_NAME,
    DEFAULT_FONT_SIZE,
    DEFAULT_ALPHA,
    DEFAULT_OUTLINE,
    DEFAULT_BOLD,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_TEMP_DIR,
)
from danmaku_processor.utils.time_utils import parse_time


def default_output_path(xml_path: str) -> str:
    """入力XMLの拡張子を .ass に置き換えたパス"""
    return os.path.splitext(xml_path)[0] + ".ass"


def convert_xml_file(xml_path: str, output_path: str, config: ConvertConfig) -> bool:
    """
    XMLファイル1つをASSに変換

    Args:
        xml_path: 弾幕XMLファイルのパス
        output_path: 出力先ASSファイルのパス
        config: 変換設定

    Returns:
        成功した場合True（既存ファイルをスキップした場合もTrue）
    """
    if os.path.isdir(output_path):
        print(f"✗ Error: output path is a directory: {output_path}")
        return False

    if os.path.exists(output_path) and not config.force:
        print(f"  Skipped (already exists): {output_path}")
        print("  Use --force or FORCE=true to overwrite.")
        return True

    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    generate_ass_from_file(
        xml_path,
        output_path,
        config.canvas_config(),
        deny_list=config.deny_list,
        dedup_window_seconds=config.dedup_window_seconds
    )
    return True


def run_folder_pipeline(folder: str, config: ConvertConfig) -> bool:
    """
    フォルダ内の全XMLを変換

    OUTPUTが指定されている場合はそのディレクトリに、
    指定されていない場合はXMLと同じ場所にASSを出力する。
    """
    xml_paths = sorted(glob.glob(os.path.join(folder, "*.xml")))
    if not xml_paths:
        print(f"✗ No XML files found in: {folder}")
        return False

    print(f"  Found {len(xml_paths)} XML files")

    failed = []
    for i, xml_path in enumerate(xml_paths, 1):
        print(f"\n[{i}/{len(xml_paths)}] {os.path.basename(xml_path)}")
        if config.output:
            output_path = os.path.join(
                config.output,
                os.path.basename(default_output_path(xml_path))
            )
        else:
            output_path = default_output_path(xml_path)

        try:
            if not convert_xml_file(xml_path, output_path, config):
                failed.append(xml_path)
        except (ValueError, FileNotFoundError) as e:
            print(f"✗ Error: {e}")
            failed.append(xml_path)

    if failed:
        print(f"\n✗ {len(failed)} of {len(xml_paths)} files failed:")
        for path in failed:
            print(f"  - {path}")
        return False
    return True


def run_convert_pipeline(config: ConvertConfig) -> bool:
    """
    変換パイプライン

    実行内容：
    - Step 1: 入力種別の判定
    - Step 2: bilibiliから弾幕取得（URL・BV番号などの場合のみ）
    - Step 3-5: XMLのパース、フィルタリング、ASS生成

    Args:
        config: 変換設定

    Returns:
        bool: 成功した場合True
    """
    print("=" * 60)
    print("DANMAKU PROCESSOR - CONVERT PIPELINE")
    print("=" * 60)

    # ステップ1: 入力種別の判定
    print("\n[Step 1] Resolving input...")
    try:
        input_type = parse_input_type(config.input)
    except ValueError as e:
        print(f"✗ Error in Step 1: {e}")
        return False
    print(f"  Input: {input_type}")

    if isinstance(input_type, FolderInput):
        print("\n[Step 3-5] Converting folder...")
        success = run_folder_pipeline(input_type.path, config)

    elif isinstance(input_type, FileInput):
        if not os.path.exists(input_type.path):
            print(f"✗ Error: input file not found: {input_type.path}")
            return False
        output_path = config.output or default_output_path(input_type.path)
        print("\n[Step 3-5] Converting XML to ASS...")
        try:
            success = convert_xml_file(input_type.path, output_path, config)
        except ValueError as e:
            print(f"✗ Error in Step 3-5: {e}")
            return False

    else:
        # ステップ2: bilibiliから弾幕取得
        print("\n[Step 2] Fetching danmaku from bilibili...")
        xml_path = fetch_danmaku(input_type, config.temp_dir)
        if xml_path is None:
            return False

        output_path = config.output or os.path.join(
            DEFAULT_OUTPUT_DIR,
            os.path.basename(default_output_path(xml_path))
        )
        print("\n[Step 3-5] Converting XML to ASS...")
        try:
            success = convert_xml_file(xml_path, output_path, config)
        except ValueError as e:
            print(f"✗ Error in Step 3-5: {e}")
            return False

    if not success:
        return False

    print("\n" + "=" * 60)
    print("CONVERT PIPELINE COMPLETED!")
    print("=" * 60)
    print()

    return True


def run_config_pipeline(config_path: str) -> bool:
    """設定ファイルを読み込んで変換パイプラインを実行"""
    config = load_config_from_file(config_path)
    return run_convert_pipeline(config)


def build_config_from_args(args: argparse.Namespace) -> ConvertConfig:
    """
    コマンドライン引数から変換設定を作成

    Raises:
        ValueError: 設定が不正
    """
    deny_list = []
    for value in args.deny or []:
        deny_list.extend(parse_deny_list(value))

    config = ConvertConfig(
        input=args.input,
        output=args.output,
        width=args.width,
        height=args.height,
        font=args.font,
        font_size=args.font_size,
        width_ratio=args.width_ratio,
        horizontal_gap=args.horizontal_gap,
        duration=args.duration,
        lane_size=args.lane_size,
        float_percentage=args.float_percentage,
        alpha=args.alpha,
        outline=args.outline,
        bold=args.bold,
        time_offset=parse_time(args.time_offset),
        deny_list=deny_list,
        dedup_window_seconds=args.dedup_window,
        temp_dir=args.temp_dir,
        force=args.force,
    )
    config.validate()
    return config


def run_single_step(step_num: int, args: argparse.Namespace) -> bool:
    """
    単一ステップを実行

    Args:
        step_num: ステップ番号
        args: コマンドライン引数

    Returns:
        成功したかどうか
    """
    print(f"\n[Step {step_num}] Running single step...")

    if step_num == 2:
        # 弾幕取得
        input_type = parse_input_type(args.input)
        if isinstance(input_type, (FileInput, FolderInput)):
            print(f"✗ Not a bilibili video or season: {args.input}")
            return False
        return fetch_danmaku(input_type, args.output) is not None

    elif step_num == 5:
        # ASS生成
        config = ConvertConfig(input=args.input)
        stats = generate_ass_from_file(args.input, args.output, config.canvas_config())
        return stats.drawn > 0

    else:
        print(f"Unknown step: {step_num}")
        return False


def add_canvas_arguments(parser: argparse.ArgumentParser) -> None:
    """キャンバス設定の引数を追加"""
    parser.add_argument("-w", "--width", type=int, default=DEFAULT_SCREEN_WIDTH, help=f"Screen width (default: {DEFAULT_SCREEN_WIDTH})")
    parser.add_argument("--height", type=int, default=DEFAULT_SCREEN_HEIGHT, help=f"Screen height (default: {DEFAULT_SCREEN_HEIGHT})")
    parser.add_argument("-f", "--font", default=DEFAULT_FONT_NAME, help=f"Font name (default: {DEFAULT_FONT_NAME})")
    parser.add_argument("--font-size", type=int, default=DEFAULT_FONT_SIZE, help=f"Font size (default: {DEFAULT_FONT_SIZE})")
    parser.add_argument("--width-ratio", type=float, default=DEFAULT_WIDTH_RATIO, help=f"Width ratio used to estimate danmaku length (default: {DEFAULT_WIDTH_RATIO})")
    parser.add_argument("--horizontal-gap", type=float, default=DEFAULT_HORIZONTAL_GAP, help=f"Minimum horizontal gap between danmaku in a lane (default: {DEFAULT_HORIZONTAL_GAP})")
    parser.add_argument("-d", "--duration", type=float, default=DEFAULT_DURATION, help=f"Seconds a danmaku stays on screen (default: {DEFAULT_DURATION})")
    parser.add_argument("-l", "--lane-size", type=int, default=DEFAULT_LANE_SIZE, help=f"Lane height in pixels (default: {DEFAULT_LANE_SIZE})")
    parser.add_argument("-p", "--float-percentage", type=float, default=DEFAULT_FLOAT_PERCENTAGE, help=f"Fraction of screen height used by scrolling danmaku (default: {DEFAULT_FLOAT_PERCENTAGE})")
    parser.add_argument("-a", "--alpha", type=float, default=DEFAULT_ALPHA, help=f"Opacity 0.0-1.0 (default: {DEFAULT_ALPHA})")
    parser.add_argument("--outline", type=float, default=DEFAULT_OUTLINE, help=f"Outline width (default: {DEFAULT_OUTLINE})")
    parser.add_argument("--bold", action=argparse.BooleanOptionalAction, default=DEFAULT_BOLD, help="Bold text")
    parser.add_argument("-t", "--time-offset", default=str(DEFAULT_TIME_OFFSET), help="Timeline offset in seconds or [-]mm:ss, >0 delays danmaku (default: 0)")
    parser.add_argument("--deny", action="append", help="Comma separated deny words (can be repeated)")
    parser.add_argument("--dedup-window", type=float, default=0.0, help="Skip identical danmaku within this many seconds (default: 0, disabled)")


def main():
    """メイン関数"""
    parser = argparse.ArgumentParser(
        description="Danmaku Processor - 弾幕XMLをASS字幕に変換するツール"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # 変換（コマンドライン引数で設定）
    convert_parser = subparsers.add_parser("convert", help="Convert XML file, folder, BV id or bilibili URL to ASS")
    convert_parser.add_argument("input", help="XML file, folder, BV id, ss/ep id or bilibili URL")
    convert_parser.add_argument("-o", "--output", help="Output ASS file (default: input name with .ass)")
    convert_parser.add_argument("--temp-dir", default=DEFAULT_TEMP_DIR, help=f"Directory for downloaded XML (default: {DEFAULT_TEMP_DIR})")
    convert_parser.add_argument("--force", action="store_true", help="Overwrite existing ASS files")
    add_canvas_arguments(convert_parser)

    # 変換（設定ファイルで設定）
    run_parser = subparsers.add_parser("run", help="Convert using a configuration file")
    run_parser.add_argument("config", help="Configuration file path")

    # サンプル設定ファイル作成
    sample_parser = subparsers.add_parser("init", help="Create sample config file")
    sample_parser.add_argument(
        "-o", "--output",
        default="config.txt",
        help="Output path for sample config (default: config.txt)"
    )

    # 個別ステップ実行用のサブコマンド
    # Step 2 (弾幕取得)
    step2_parser = subparsers.add_parser("step2", help="Fetch danmaku XML from bilibili")
    step2_parser.add_argument("input", help="BV id, ss/ep id or bilibili URL")
    step2_parser.add_argument("-o", "--output", default=DEFAULT_TEMP_DIR, help=f"Output directory (default: {DEFAULT_TEMP_DIR})")

    # Step 5 (ASS生成)
    step5_parser = subparsers.add_parser("step5", help="Generate ASS from XML with default settings")
    step5_parser.add_argument("-i", "--input", required=True, help="Input XML file")
    step5_parser.add_argument("-o", "--output", required=True, help="Output ASS file")

    args = parser.parse_args()

    # コマンドが指定されていない場合
    if not args.command:
        parser.print_help()
        return 1

    # コマンド実行
    try:
        if args.command == "convert":
            config = build_config_from_args(args)
            success = run_convert_pipeline(config)
            return 0 if success else 1

        elif args.command == "run":
            success = run_config_pipeline(args.config)
            return 0 if success else 1

        elif args.command == "init":
            create_sample_config(args.output)
            return 0

        elif args.command.startswith("step"):
            step_num = int(args.command[4:])
            success = run_single_step(step_num, args)
            return 0 if success else 1

        else:
            print(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 1
    except Exception as e:
        print(f"\n✗ Error: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
