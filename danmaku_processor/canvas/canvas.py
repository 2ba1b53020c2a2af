"""
弾幕キャンバス（描画戦略の決定）

固定長のレーン配列に対して、1件ずつ弾幕の配置先レーン・遅延・破棄を決める。
弾幕はタイムライン昇順で渡すこと（逆順の入力は検証しない）。
"""
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from danmaku_processor.canvas.lane import Collide, Lane
from danmaku_processor.constants import (
    DEFAULT_SCREEN_WIDTH,
    DEFAULT_SCREEN_HEIGHT,
    DEFAULT_DURATION,
    DEFAULT_LANE_SIZE,
    DEFAULT_FLOAT_PERCENTAGE,
    DEFAULT_WIDTH_RATIO,
    DEFAULT_HORIZONTAL_GAP,
    DEFAULT_TIME_OFFSET,
    DEFAULT_MAX_DELAY,
    DEFAULT_DELAY_PADDING,
    DEFAULT_FONT_NAME,
    DEFAULT_FONT_SIZE,
    DEFAULT_ALPHA,
    DEFAULT_OUTLINE,
    DEFAULT_BOLD,
    FLOAT_STYLE_NAME,
)
from danmaku_processor.danmaku import Danmaku, DanmakuType
from danmaku_processor.drawable import Drawable


FLOAT_POOL = "float"

# 表示モードごとの配置先レーンプール
# 上部・下部固定や逆方向の弾幕も、すべてスクロール弾幕として流す
PLACEMENT_POOLS: Dict[DanmakuType, str] = {
    DanmakuType.FLOAT: FLOAT_POOL,
    DanmakuType.TOP: FLOAT_POOL,
    DanmakuType.BOTTOM: FLOAT_POOL,
    DanmakuType.REVERSE: FLOAT_POOL,
}


@dataclass
class CanvasConfig:
    """キャンバス設定（1回の変換処理の間は変更しない）"""
    width: int = DEFAULT_SCREEN_WIDTH
    height: int = DEFAULT_SCREEN_HEIGHT
    duration: float = DEFAULT_DURATION
    lane_size: int = DEFAULT_LANE_SIZE
    float_percentage: float = DEFAULT_FLOAT_PERCENTAGE

    # フォント設定
    font: str = DEFAULT_FONT_NAME
    font_size: int = DEFAULT_FONT_SIZE
    width_ratio: float = DEFAULT_WIDTH_RATIO

    # 配置設定
    horizontal_gap: float = DEFAULT_HORIZONTAL_GAP
    time_offset: float = DEFAULT_TIME_OFFSET
    max_delay: float = DEFAULT_MAX_DELAY
    delay_padding: float = DEFAULT_DELAY_PADDING

    # スタイル設定
    alpha: float = DEFAULT_ALPHA
    bold: bool = DEFAULT_BOLD
    outline: float = DEFAULT_OUTLINE

    @property
    def float_lane_count(self) -> int:
        """スクロール弾幕に使えるレーン数"""
        return math.floor(self.float_percentage * self.height / self.lane_size)

    def canvas(self) -> "Canvas":
        return Canvas(self)


class Canvas:
    """弾幕キャンバス"""

    def __init__(self, config: CanvasConfig):
        self.config = config
        self.float_lanes: List[Optional[Lane]] = [None] * config.float_lane_count
        self._pool_drawers: Dict[str, Callable[[Danmaku], Optional[Drawable]]] = {
            FLOAT_POOL: self._draw_float,
        }

    def draw(self, danmaku: Danmaku) -> Optional[Drawable]:
        """
        弾幕を1件配置する

        Args:
            danmaku: 弾幕（タイムライン昇順で渡すこと）

        Returns:
            配置結果。表示できない場合はNone
        """
        timeline_s = danmaku.timeline_s + self.config.time_offset
        if timeline_s < 0:
            return None
        danmaku = danmaku.with_timeline(timeline_s)

        pool = PLACEMENT_POOLS[danmaku.type]
        if pool == FLOAT_POOL and danmaku.type != DanmakuType.FLOAT:
            # 固定弾幕は好みではないので、スクロール弾幕に変換する
            danmaku = danmaku.with_type(DanmakuType.FLOAT)
        return self._pool_drawers[pool](danmaku)

    def _draw_float(self, danmaku: Danmaku) -> Optional[Drawable]:
        length = danmaku.length(self.config.font_size, self.config.width_ratio)
        collisions: List[Tuple[float, int]] = []

        for idx, lane in enumerate(self.float_lanes):
            # 空いているレーンを優先
            if lane is None:
                return self._draw_float_in_lane(danmaku, length, idx)

            collision = lane.available_for(danmaku.timeline_s, length, self.config)
            if isinstance(collision, Collide):
                collisions.append((collision.time_needed, idx))
            else:
                return self._draw_float_in_lane(danmaku, length, idx)

        if not collisions:
            return None

        # 同じ遅延ならレーン番号の小さい方
        time_needed, lane_idx = min(collisions)
        if time_needed >= self.config.max_delay:
            return None

        delay = time_needed + self.config.delay_padding
        return self._draw_float_in_lane(
            danmaku.with_timeline(danmaku.timeline_s + delay),
            length,
            lane_idx,
            delay=delay
        )

    def _draw_float_in_lane(
        self,
        danmaku: Danmaku,
        length: float,
        lane_idx: int,
        delay: float = 0.0
    ) -> Drawable:
        self.float_lanes[lane_idx] = Lane.draw(danmaku.timeline_s, length)
        y = lane_idx * self.config.lane_size
        return Drawable(
            danmaku=danmaku,
            lane_index=lane_idx,
            start_position=(self.config.width, y),
            end_position=(-int(length), y),
            duration=self.config.duration,
            delay=delay,
            style=FLOAT_STYLE_NAME,
        )
