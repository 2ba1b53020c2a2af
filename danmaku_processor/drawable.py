"""描画が確定した弾幕（レーン・時刻・移動量を含む）"""
from dataclasses import dataclass
from typing import Tuple

from danmaku_processor.constants import FLOAT_STYLE_NAME
from danmaku_processor.danmaku import Danmaku


@dataclass(frozen=True)
class Drawable:
    """キャンバスが出力する配置結果"""
    danmaku: Danmaku  # timeline_s は遅延・オフセット適用後
    lane_index: int
    start_position: Tuple[int, int]
    end_position: Tuple[int, int]
    duration: float
    delay: float = 0.0  # 衝突回避のために追加した遅延（秒）
    style: str = FLOAT_STYLE_NAME

    @property
    def effective_start_time(self) -> float:
        return self.danmaku.timeline_s

    @property
    def end_time(self) -> float:
        return self.danmaku.timeline_s + self.duration
