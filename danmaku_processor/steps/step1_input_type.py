"""
ステップ1: 入力種別の判定

入力文字列を次のいずれかに分類する:
- File:    XMLファイル
- Folder:  XMLファイルを含むフォルダ
- BV:      https://www.bilibili.com/video/BV1z44y1E7m6 または BV1z44y1E7m6
- Season:  https://www.bilibili.com/bangumi/play/ss28296 または ss28296
- Episode: https://www.bilibili.com/bangumi/play/ep473502 または ep473502
"""

import os
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlparse, parse_qs

from danmaku_processor.constants import BILIBILI_DOMAIN


@dataclass(frozen=True)
class FileInput:
    path: str


@dataclass(frozen=True)
class FolderInput:
    path: str


@dataclass(frozen=True)
class BVInput:
    bv: str
    p: Optional[int] = None  # 分P（1始まり）


@dataclass(frozen=True)
class SeasonInput:
    season_id: int


@dataclass(frozen=True)
class EpisodeInput:
    episode_id: int


InputType = Union[FileInput, FolderInput, BVInput, SeasonInput, EpisodeInput]


def parse_input_type(value: str) -> InputType:
    """
    入力文字列を判定

    Args:
        value: ファイルパス / フォルダパス / BV番号 / ss・ep番号 / bilibili URL

    Returns:
        InputType

    Raises:
        ValueError: 対応していないURLやID
    """
    value = value.strip()

    if value.startswith("http"):
        parsed = urlparse(value)
        if parsed.scheme in ("http", "https") and parsed.netloc:
            return parse_url(value)

    if value.isascii() and value.isalnum():
        if value.startswith("BV"):
            return BVInput(bv=value)
        if value[:2] in ("ss", "ep"):
            try:
                return parse_episode_or_season(value)
            except ValueError:
                # "ssfoo" のような名前はファイルとして扱う
                pass

    if os.path.isdir(value):
        return FolderInput(path=value)
    return FileInput(path=value)


def parse_url(url: str) -> InputType:
    """
    bilibiliのURLを判定

    Raises:
        ValueError: 対応していないドメインまたはパス
    """
    parsed = urlparse(url)
    if parsed.hostname != BILIBILI_DOMAIN:
        raise ValueError(f"Unsupported domain: {parsed.hostname or ''}")

    segments = [s for s in parsed.path.split("/") if s]
    if not segments:
        raise ValueError(f"Invalid URL path: {url}")

    if segments[0] == "video":
        if len(segments) < 2:
            raise ValueError(f"Invalid URL path: {url}")
        p = None
        query = parse_qs(parsed.query)
        if "p" in query:
            try:
                p = int(query["p"][0])
            except ValueError:
                p = None
        return BVInput(bv=segments[1], p=p)

    if segments[0] == "bangumi":
        if len(segments) < 3 or segments[1] != "play":
            raise ValueError(f"Invalid URL, expected bangumi/play/...: {url}")
        return parse_episode_or_season(segments[2])

    raise ValueError(
        "Unsupported URL, expected video/BV1z44y1E7m6, "
        "bangumi/play/ss28296 or bangumi/play/ep473502"
    )


def parse_episode_or_season(value: str) -> InputType:
    """
    ss123 / ep123 形式のIDを判定

    Raises:
        ValueError: 対応していないID
    """
    prefix = value[:2]
    if prefix not in ("ss", "ep"):
        raise ValueError(f"Unsupported id type (only ss123 and ep123 are supported): {value}")

    try:
        number = int(value[2:])
    except ValueError:
        raise ValueError(f"Failed to parse id: {value}")

    if prefix == "ss":
        return SeasonInput(season_id=number)
    return EpisodeInput(episode_id=number)
