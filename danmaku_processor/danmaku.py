"""弾幕レコード（位置情報を持たない1件のコメント）"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple


class DanmakuType(Enum):
    """弾幕の表示モード"""
    FLOAT = "float"      # 右から左へ流れる
    TOP = "top"          # 上部固定
    BOTTOM = "bottom"    # 下部固定
    REVERSE = "reverse"  # 左から右へ流れる

    @classmethod
    def from_xml_num(cls, num: int) -> "DanmakuType":
        """
        bilibili XMLの弾幕タイプ番号から変換

        Args:
            num: 1=通常, 4=下部, 5=上部, 6=逆方向

        Raises:
            ValueError: 未知のタイプ番号
        """
        mapping = {
            1: cls.FLOAT,
            4: cls.BOTTOM,
            5: cls.TOP,
            6: cls.REVERSE,
        }
        if num not in mapping:
            raise ValueError(f"Unknown danmaku type: {num}")
        return mapping[num]


@dataclass(frozen=True)
class Danmaku:
    """弾幕1件"""
    timeline_s: float  # 動画内での秒数
    content: str
    type: DanmakuType = DanmakuType.FLOAT
    fontsize: int = 25  # 元データのフォントサイズ
    rgb: Tuple[int, int, int] = (255, 255, 255)

    def length(self, font_size: int, width_ratio: float) -> float:
        """
        表示時のピクセル幅

        ASCII文字は全角の2/3として数える。

        Args:
            font_size: 描画に使うフォントサイズ
            width_ratio: 幅の補正係数
        """
        units = sum(2 if ord(ch) < 128 else 3 for ch in self.content)
        return font_size * units / 3 * width_ratio

    def with_timeline(self, timeline_s: float) -> "Danmaku":
        return replace(self, timeline_s=timeline_s)

    def with_type(self, danmaku_type: DanmakuType) -> "Danmaku":
        return replace(self, type=danmaku_type)
