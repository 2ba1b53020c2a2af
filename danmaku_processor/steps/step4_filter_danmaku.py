"""
ステップ4: 弾幕のフィルタリング

NGワードを含む弾幕や、短時間に連投された同一弾幕を除外する。
"""

from typing import Dict, Iterable, List, Optional

from danmaku_processor.danmaku import Danmaku


def is_denied(danmaku: Danmaku, deny_list: Iterable[str]) -> bool:
    """NGワードを含むかどうか"""
    return any(word and word in danmaku.content for word in deny_list)


def filter_danmaku(
    danmaku_list: List[Danmaku],
    deny_list: Optional[Iterable[str]] = None,
    min_length: int = 1,
    max_length: Optional[int] = None
) -> List[Danmaku]:
    """
    弾幕をフィルタリング

    Args:
        danmaku_list: 弾幕リスト
        deny_list: NGワードのリスト（部分一致、任意）
        min_length: 最小文字数
        max_length: 最大文字数（任意）

    Returns:
        フィルタリング後の弾幕リスト
    """
    deny_words = [word for word in (deny_list or []) if word]
    filtered = []

    for danmaku in danmaku_list:
        # 文字数チェック
        text_len = len(danmaku.content.strip())
        if text_len < min_length:
            continue
        if max_length is not None and text_len > max_length:
            continue

        # NGワードチェック
        if deny_words and is_denied(danmaku, deny_words):
            continue

        filtered.append(danmaku)

    return filtered


def deduplicate_danmaku(
    danmaku_list: List[Danmaku],
    window_seconds: float = 0.0
) -> List[Danmaku]:
    """
    短時間に連投された同一弾幕を除外する

    Args:
        danmaku_list: タイムライン昇順の弾幕リスト
        window_seconds: この秒数以内に同じ弾幕があればスキップ（0以下で無効）
    """
    if window_seconds <= 0 or not danmaku_list:
        return danmaku_list

    last_seen: Dict[str, float] = {}
    filtered: List[Danmaku] = []

    for danmaku in danmaku_list:
        key = danmaku.content.strip()
        last_time = last_seen.get(key)
        if last_time is not None and (danmaku.timeline_s - last_time) < window_seconds:
            continue
        last_seen[key] = danmaku.timeline_s
        filtered.append(danmaku)

    return filtered
