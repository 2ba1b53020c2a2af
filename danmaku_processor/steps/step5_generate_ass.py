"""
ステップ5: 弾幕オーバーレイ（ASS）生成

弾幕をキャンバスに配置し、右→左へ流れるASS字幕ファイルとして書き出す。
"""

import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, TextIO, Tuple

from danmaku_processor.canvas.canvas import CanvasConfig
from danmaku_processor.constants import FLOAT_STYLE_NAME
from danmaku_processor.danmaku import Danmaku
from danmaku_processor.drawable import Drawable
from danmaku_processor.steps.step3_parse_danmaku import load_danmaku_from_file
from danmaku_processor.steps.step4_filter_danmaku import deduplicate_danmaku, filter_danmaku
from danmaku_processor.utils.time_utils import ass_time_format, format_time


@dataclass
class ConvertStats:
    """変換結果の集計"""
    total: int = 0     # 入力された弾幕数
    filtered: int = 0  # NGワード・重複で除外した数
    drawn: int = 0     # ASSに書き出した数
    delayed: int = 0   # 衝突回避のために遅延させた数（drawnに含まれる）
    dropped: int = 0   # 配置できずに捨てた数

    @property
    def drawn_ratio(self) -> float:
        candidates = self.total - self.filtered
        return self.drawn / candidates if candidates > 0 else 0.0


def ass_alpha(opacity: float) -> str:
    """不透明度（0.0〜1.0）をASSのアルファ値（00が不透明）に変換"""
    opacity = min(max(opacity, 0.0), 1.0)
    return f"{round((1.0 - opacity) * 255):02X}"


def ass_color(rgb: Tuple[int, int, int]) -> str:
    """RGBをASSの色指定（&HBBGGRR&）に変換"""
    r, g, b = rgb
    return f"&H{b:02X}{g:02X}{r:02X}&"


def escape_ass_text(text: str) -> str:
    """ASSの制御文字をエスケープし、改行を \\N に変換"""
    escaped = text.replace("\\", "\\\\").replace("{", "\\{").replace("}", "\\}")
    return escaped.replace("\r\n", "\\N").replace("\r", "\\N").replace("\n", "\\N")


def generate_ass_header(config: CanvasConfig, title: str) -> str:
    """
    ASSファイルのヘッダーを生成

    Args:
        config: キャンバス設定
        title: スクリプトのタイトル

    Returns:
        ASSヘッダー文字列
    """
    alpha = ass_alpha(config.alpha)
    bold = -1 if config.bold else 0
    header = f"""[Script Info]
Title: {title}
ScriptType: v4.00+
WrapStyle: 2
PlayResX: {config.width}
PlayResY: {config.height}
ScaledBorderAndShadow: yes

[V4+ Styles]
Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding
Style: {FLOAT_STYLE_NAME},{config.font},{config.font_size},&H{alpha}FFFFFF,&H{alpha}FFFFFF,&H{alpha}000000,&H{alpha}000000,{bold},0,0,0,100,100,0,0,1,{config.outline},0,7,0,0,0,1

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
"""
    return header


def format_dialogue(drawable: Drawable) -> str:
    """
    配置結果をDialogue行に変換

    Args:
        drawable: キャンバスの配置結果

    Returns:
        改行付きのDialogue行
    """
    danmaku = drawable.danmaku
    start_x, start_y = drawable.start_position
    end_x, end_y = drawable.end_position

    override = f"\\move({start_x},{start_y},{end_x},{end_y})"
    if danmaku.rgb != (255, 255, 255):
        override += f"\\c{ass_color(danmaku.rgb)}"

    start_str = ass_time_format(drawable.effective_start_time)
    end_str = ass_time_format(drawable.end_time)
    text = escape_ass_text(danmaku.content)

    return (
        f"Dialogue: 2,{start_str},{end_str},{drawable.style},,0,0,0,,"
        f"{{{override}}}{text}\n"
    )


def convert_danmaku(
    danmaku_list: Iterable[Danmaku],
    output: TextIO,
    config: CanvasConfig,
    title: str = "danmaku",
    deny_list: Optional[Iterable[str]] = None,
    dedup_window_seconds: float = 0.0
) -> ConvertStats:
    """
    弾幕を配置してASSを書き出す

    1回の変換ごとに新しいキャンバスを使う。

    Args:
        danmaku_list: 弾幕（順不同でよい、タイムライン昇順に並べ替える）
        output: 書き出し先のテキストストリーム
        config: キャンバス設定
        title: ASSのタイトル
        deny_list: NGワードのリスト（任意）
        dedup_window_seconds: 重複除去の時間窓（秒、0以下で無効）

    Returns:
        ConvertStats
    """
    # キャンバスは昇順の入力を前提とするので、安定ソートしておく
    ordered: List[Danmaku] = sorted(danmaku_list, key=lambda d: d.timeline_s)
    stats = ConvertStats(total=len(ordered))

    kept = filter_danmaku(ordered, deny_list=deny_list)
    kept = deduplicate_danmaku(kept, window_seconds=dedup_window_seconds)
    stats.filtered = stats.total - len(kept)

    canvas = config.canvas()
    output.write(generate_ass_header(config, title))

    for danmaku in kept:
        drawable = canvas.draw(danmaku)
        if drawable is None:
            stats.dropped += 1
            continue
        if drawable.delay > 0:
            stats.delayed += 1
        output.write(format_dialogue(drawable))
        stats.drawn += 1

    return stats


def generate_ass_from_file(
    xml_path: str,
    output_path: str,
    config: Optional[CanvasConfig] = None,
    title: Optional[str] = None,
    deny_list: Optional[Iterable[str]] = None,
    dedup_window_seconds: float = 0.0
) -> ConvertStats:
    """
    弾幕XMLファイルからASSオーバーレイを生成

    Args:
        xml_path: 弾幕XMLファイルのパス
        output_path: 出力先パス（.ass）
        config: キャンバス設定（Noneの場合はデフォルト）
        title: ASSのタイトル（Noneの場合はファイル名）
        deny_list: NGワードのリスト（任意）
        dedup_window_seconds: 重複除去の時間窓（秒）

    Returns:
        ConvertStats
    """
    if config is None:
        config = CanvasConfig()

    danmaku_list = load_danmaku_from_file(xml_path)
    if not danmaku_list:
        print(f"Warning: No danmaku found in {xml_path}")

    if title is None:
        title = os.path.splitext(os.path.basename(xml_path))[0]

    with open(output_path, "w", encoding="utf-8") as f:
        stats = convert_danmaku(
            danmaku_list,
            f,
            config,
            title=title,
            deny_list=deny_list,
            dedup_window_seconds=dedup_window_seconds
        )

    print(f"✓ Generated ASS overlay with {stats.drawn}/{stats.total} danmaku")
    print(f"  Input: {xml_path}")
    print(f"  Output: {output_path}")
    print(f"  Lanes: {config.float_lane_count} (lane size {config.lane_size}px)")
    if danmaku_list:
        last_time = max(d.timeline_s for d in danmaku_list)
        print(f"  Timeline: 00:00:00 - {format_time(last_time, include_ms=False)}")
    if stats.filtered:
        print(f"  Filtered: {stats.filtered}")
    if stats.delayed:
        print(f"  Delayed: {stats.delayed}")
    if stats.dropped:
        print(f"  Dropped: {stats.dropped} ({stats.drawn_ratio:.1%} drawn)")

    return stats
