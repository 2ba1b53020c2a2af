"""
弾幕レーン

1本のレーンは直前に発射された弾幕の「発射時刻」と「長さ」だけを保持する。
弾幕は長さ l の剛体として等速 v = (W + l) / T で右端から左端へ移動する。
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from danmaku_processor.canvas.canvas import CanvasConfig


@dataclass(frozen=True)
class Separate:
    """前の弾幕より遅いので、距離は広がる一方"""
    closest_dis: float


@dataclass(frozen=True)
class NotEnoughTime:
    """追いつける速度だが、前の弾幕が消えるまでに追いつかない"""
    closest_dis: float


@dataclass(frozen=True)
class Collide:
    """time_needed 秒遅らせれば衝突を避けられる"""
    time_needed: float


Collision = Union[Separate, NotEnoughTime, Collide]


@dataclass
class Lane:
    """弾幕レーン（最後に発射した弾幕の軌跡）"""
    last_launch_time: float
    last_launch_length: float

    @classmethod
    def draw(cls, timeline_s: float, length: float) -> "Lane":
        """配置が確定した弾幕からレーンの状態を作る"""
        return cls(last_launch_time=timeline_s, last_launch_length=length)

    def available_for(
        self,
        timeline_s: float,
        length: float,
        config: "CanvasConfig"
    ) -> Collision:
        """
        このレーンに新しい弾幕を発射できるかを判定する（状態は変更しない）

        Args:
            timeline_s: 新しい弾幕の発射時刻（秒）
            length: 新しい弾幕のピクセル幅
            config: キャンバス設定（画面幅・表示時間・水平間隔）

        Returns:
            Separate / NotEnoughTime / Collide のいずれか
        """
        T = config.duration
        W = float(config.width)
        gap = config.horizontal_gap

        t1 = self.last_launch_time
        l1 = self.last_launch_length
        t2 = timeline_s
        l2 = length

        v1 = (W + l1) / T
        v2 = (W + l2) / T

        delta_t = t2 - t1
        # 前の弾幕の末尾と新しい弾幕の先頭の距離
        delta_x = v1 * delta_t - l1

        if delta_x < gap:
            # 前の弾幕がまだ画面に入りきっていない
            if l2 <= l1:
                return Collide(time_needed=(gap - delta_x) / v1)
            # 長い弾幕は前の弾幕が消える瞬間に左端へ届かないよう発射を遅らせる
            return Collide(time_needed=(t1 + T - (W - gap) / v2) - t2)

        if l2 <= l1:
            # 速度が同じか遅いので永遠に追いつかない
            return Separate(closest_dis=delta_x)

        # 追跡問題: 前の弾幕が消えた時点での新しい弾幕の進んだ距離
        pos = v2 * (T - delta_t)
        if pos < W - gap:
            return NotEnoughTime(closest_dis=W - pos)
        return Collide(time_needed=(pos - W + gap) / v2)
