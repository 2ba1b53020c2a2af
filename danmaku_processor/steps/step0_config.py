"""
ステップ0: 設定ファイル読み込み

設定ファイルから必要な情報を取得する:
- 入力（XMLファイル / フォルダ / BV番号 / bilibili URL）
- 出力先ASSファイル
- キャンバス設定（画面サイズ、表示時間、レーン高さなど）
- 弾幕のフィルタ設定（NGワード、重複除去）
"""

import os
from typing import Dict, List, Optional
from dataclasses import dataclass, field

from danmaku_processor.canvas.canvas import CanvasConfig
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
    DEFAULT_TEMP_DIR,
)
from danmaku_processor.utils.time_utils import parse_time


@dataclass
class ConvertConfig:
    """変換処理の設定"""
    input: str  # ファイル / フォルダ / BV番号 / URL
    output: Optional[str] = None  # 出力ASS（任意、省略時は入力名から決定）
    width: int = DEFAULT_SCREEN_WIDTH
    height: int = DEFAULT_SCREEN_HEIGHT
    font: str = DEFAULT_FONT_NAME
    font_size: int = DEFAULT_FONT_SIZE
    width_ratio: float = DEFAULT_WIDTH_RATIO
    horizontal_gap: float = DEFAULT_HORIZONTAL_GAP
    duration: float = DEFAULT_DURATION
    lane_size: int = DEFAULT_LANE_SIZE
    float_percentage: float = DEFAULT_FLOAT_PERCENTAGE
    alpha: float = DEFAULT_ALPHA
    outline: float = DEFAULT_OUTLINE
    bold: bool = DEFAULT_BOLD
    time_offset: float = DEFAULT_TIME_OFFSET
    deny_list: List[str] = field(default_factory=list)
    dedup_window_seconds: float = 0.0
    temp_dir: str = DEFAULT_TEMP_DIR  # bilibiliから取得したXMLの保存先
    force: bool = False  # 既存のASSを上書きするか

    def validate(self) -> None:
        """設定の妥当性をチェック"""
        if not self.input:
            raise ValueError("input is required")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"width and height must be positive, got: {self.width}x{self.height}")
        if self.duration <= 0:
            raise ValueError(f"duration must be positive, got: {self.duration}")
        if self.lane_size <= 0:
            raise ValueError(f"lane_size must be positive, got: {self.lane_size}")
        if self.font_size <= 0:
            raise ValueError(f"font_size must be positive, got: {self.font_size}")
        if not 0.0 <= self.float_percentage <= 1.0:
            raise ValueError(
                f"float_percentage must be between 0.0 and 1.0, got: {self.float_percentage}"
            )
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha must be between 0.0 and 1.0, got: {self.alpha}")
        if self.width_ratio <= 0:
            raise ValueError(f"width_ratio must be positive, got: {self.width_ratio}")
        if self.horizontal_gap < 0:
            raise ValueError(f"horizontal_gap must not be negative, got: {self.horizontal_gap}")

    def canvas_config(self) -> CanvasConfig:
        """キャンバス設定を作成"""
        return CanvasConfig(
            width=self.width,
            height=self.height,
            duration=self.duration,
            lane_size=self.lane_size,
            float_percentage=self.float_percentage,
            font=self.font,
            font_size=self.font_size,
            width_ratio=self.width_ratio,
            horizontal_gap=self.horizontal_gap,
            time_offset=self.time_offset,
            alpha=self.alpha,
            bold=self.bold,
            outline=self.outline,
        )


def _parse_bool(value: str) -> bool:
    return value.lower() in ["true", "yes", "1"]


def _parse_number(config_dict: Dict[str, str], key: str, default, cast):
    """数値項目のパース（不正な値はValueError）"""
    if key not in config_dict:
        return default
    try:
        return cast(config_dict[key])
    except ValueError:
        raise ValueError(f"{key} must be a number, got: {config_dict[key]}")


def parse_deny_list(value: str) -> List[str]:
    """カンマ区切りのNGワードをリストに変換"""
    return [word.strip() for word in value.split(",") if word.strip()]


def load_config_from_file(config_path: str) -> ConvertConfig:
    """
    設定ファイルから設定を読み込む

    設定ファイル形式（シンプルなkey=value形式）:
        INPUT=data/input/danmaku.xml
        OUTPUT=data/output/danmaku.ass
        DURATION=10
        DENY_LIST=NGワード1,NGワード2

    Args:
        config_path: 設定ファイルのパス

    Returns:
        ConvertConfig: 読み込んだ設定

    Raises:
        FileNotFoundError: 設定ファイルが見つからない
        ValueError: 設定が不正
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    config_dict: Dict[str, str] = {}

    with open(config_path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()

            # 空行やコメント行をスキップ
            if not line or line.startswith("#"):
                continue

            # key=value 形式で分割
            if "=" not in line:
                raise ValueError(
                    f"Invalid format at line {line_num}: {line}. "
                    "Expected 'KEY=VALUE' format"
                )

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip()

            if not key or not value:
                raise ValueError(
                    f"Empty key or value at line {line_num}: {line}"
                )

            config_dict[key] = value

    # 必須項目のチェック
    if "INPUT" not in config_dict:
        raise ValueError("Missing required config keys: INPUT")

    time_offset = DEFAULT_TIME_OFFSET
    if "TIME_OFFSET" in config_dict:
        time_offset = parse_time(config_dict["TIME_OFFSET"])

    config = ConvertConfig(
        input=config_dict["INPUT"],
        output=config_dict.get("OUTPUT"),
        width=_parse_number(config_dict, "WIDTH", DEFAULT_SCREEN_WIDTH, int),
        height=_parse_number(config_dict, "HEIGHT", DEFAULT_SCREEN_HEIGHT, int),
        font=config_dict.get("FONT", DEFAULT_FONT_NAME),
        font_size=_parse_number(config_dict, "FONT_SIZE", DEFAULT_FONT_SIZE, int),
        width_ratio=_parse_number(config_dict, "WIDTH_RATIO", DEFAULT_WIDTH_RATIO, float),
        horizontal_gap=_parse_number(config_dict, "HORIZONTAL_GAP", DEFAULT_HORIZONTAL_GAP, float),
        duration=_parse_number(config_dict, "DURATION", DEFAULT_DURATION, float),
        lane_size=_parse_number(config_dict, "LANE_SIZE", DEFAULT_LANE_SIZE, int),
        float_percentage=_parse_number(
            config_dict, "FLOAT_PERCENTAGE", DEFAULT_FLOAT_PERCENTAGE, float
        ),
        alpha=_parse_number(config_dict, "ALPHA", DEFAULT_ALPHA, float),
        outline=_parse_number(config_dict, "OUTLINE", DEFAULT_OUTLINE, float),
        bold=_parse_bool(config_dict["BOLD"]) if "BOLD" in config_dict else DEFAULT_BOLD,
        time_offset=time_offset,
        deny_list=parse_deny_list(config_dict.get("DENY_LIST", "")),
        dedup_window_seconds=_parse_number(config_dict, "DEDUP_WINDOW_SECONDS", 0.0, float),
        temp_dir=config_dict.get("TEMP_DIR", DEFAULT_TEMP_DIR),
        force=_parse_bool(config_dict.get("FORCE", "false")),
    )

    # バリデーション
    config.validate()

    return config


def create_sample_config(output_path: str = "config.txt") -> None:
    """
    サンプル設定ファイルを作成

    Args:
        output_path: 出力先パス
    """
    sample_content = f"""# Danmaku Processor 設定ファイル
# key=value 形式で記述してください

# 入力（必須）
# - XMLファイル:  data/input/danmaku.xml
# - フォルダ:     data/input（フォルダ内の *.xml をすべて変換）
# - bilibili:     BV1z44y1E7m6 / https://www.bilibili.com/video/BV1z44y1E7m6?p=2
# - 番組:         ss28296 / ep473502
INPUT=data/input/danmaku.xml

# 出力ASSファイル（任意、省略時は入力ファイル名の拡張子を .ass に変更）
# OUTPUT=data/output/danmaku.ass

# 画面サイズ（任意、デフォルト: {DEFAULT_SCREEN_WIDTH}x{DEFAULT_SCREEN_HEIGHT}）
WIDTH={DEFAULT_SCREEN_WIDTH}
HEIGHT={DEFAULT_SCREEN_HEIGHT}

# フォント（任意）
FONT={DEFAULT_FONT_NAME}
FONT_SIZE={DEFAULT_FONT_SIZE}

# 弾幕幅の計算係数。重なる場合は大きくする（任意、デフォルト: {DEFAULT_WIDTH_RATIO}）
WIDTH_RATIO={DEFAULT_WIDTH_RATIO}

# 同じレーンの弾幕同士の最小水平間隔（ピクセル、任意）
HORIZONTAL_GAP={DEFAULT_HORIZONTAL_GAP}

# 弾幕が画面を横切る時間（秒、任意）
DURATION={DEFAULT_DURATION}

# 1レーンの高さ（ピクセル、任意）
LANE_SIZE={DEFAULT_LANE_SIZE}

# スクロール弾幕が使う画面高さの割合（0.0〜1.0、任意）
FLOAT_PERCENTAGE={DEFAULT_FLOAT_PERCENTAGE}

# 不透明度（0.0〜1.0）、縁取り幅、太字（任意）
ALPHA={DEFAULT_ALPHA}
OUTLINE={DEFAULT_OUTLINE}
BOLD={str(DEFAULT_BOLD).lower()}

# タイムラインのオフセット（秒 または mm:ss、任意）
# 正の値で弾幕を遅らせ、負の値で早める（例: -00:05）
TIME_OFFSET=0

# NGワード（カンマ区切り、任意）
# DENY_LIST=NGワード1,NGワード2

# この秒数以内に同じ弾幕があれば除外（0以下で無効、任意）
# DEDUP_WINDOW_SECONDS=3

# bilibiliから取得したXMLの保存先（任意、デフォルト: {DEFAULT_TEMP_DIR}）
TEMP_DIR={DEFAULT_TEMP_DIR}

# 既存のASSファイルを上書きするか（任意、デフォルト: false）
FORCE=false
"""

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(sample_content)

    print(f"Sample config file created: {output_path}")
