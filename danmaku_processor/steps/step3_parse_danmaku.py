"""
ステップ3: 弾幕XMLのパース

bilibili形式（録播姬の出力を含む）の弾幕XMLを読み込み、Danmakuに変換する。

    <d p="0.581,1,25,14893055,1647777083220,0,398452452,0" user="...">快快快</d>

p属性の各項目:
    1. 時間（秒）
    2. 弾幕タイプ（1: 通常, 4: 下部, 5: 上部, 6: 逆方向）
    3. フォントサイズ（デフォルト25）
    4. 色（例: 14893055）
    5. 送信時刻のタイムスタンプ（ミリ秒）
    6. 0
    7. ユーザーUID
    8. 0
"""

import os
import xml.etree.ElementTree as ET
from typing import Iterator, List, Optional, Tuple

from danmaku_processor.danmaku import Danmaku, DanmakuType


def parse_color(value: int) -> Tuple[int, int, int]:
    """
    弾幕の色をRGBに変換

    通常は 0xRRGGBB だが、まれに10進数の RRRGGGBBB（例: 255255255）がある。

    Raises:
        ValueError: どちらの形式でもない値（負の値を含む）
    """
    if value < 0:
        raise ValueError(f"Invalid color: {value}")
    if (value >> 24) == 0:
        return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)
    if value <= 255255255:
        k = 1000
        return (
            ((value // k // k) % k) & 0xFF,
            ((value // k) % k) & 0xFF,
            (value % k) & 0xFF,
        )
    raise ValueError(f"Invalid color: {value:x}")


def parse_p_attr(p_attr: str) -> Optional[Danmaku]:
    """
    p属性から弾幕を作成（本文は空）

    Args:
        p_attr: "時間,タイプ,サイズ,色,..." 形式の文字列

    Returns:
        Danmaku。未対応の弾幕タイプの場合はNone

    Raises:
        ValueError: 項目が足りない、または数値として解析できない
    """
    fields = p_attr.split(",")
    if len(fields) < 4:
        raise ValueError(f"p attribute has too few fields: {p_attr}")

    try:
        timeline_s = float(fields[0])
    except ValueError:
        raise ValueError(f"Invalid time in p attribute: {fields[0]}")

    try:
        type_num = int(fields[1])
    except ValueError:
        raise ValueError(f"Invalid danmaku type in p attribute: {fields[1]}")
    try:
        danmaku_type = DanmakuType.from_xml_num(type_num)
    except ValueError:
        # 高級弾幕やコード弾幕などは対象外
        return None

    try:
        fontsize = int(fields[2])
    except ValueError:
        raise ValueError(f"Invalid font size in p attribute: {fields[2]}")

    try:
        color = int(fields[3])
    except ValueError:
        raise ValueError(f"Invalid color in p attribute: {fields[3]}")

    return Danmaku(
        timeline_s=timeline_s,
        content="",
        type=danmaku_type,
        fontsize=fontsize,
        rgb=parse_color(color),
    )


def iter_danmaku_from_string(xml_text: str) -> Iterator[Danmaku]:
    """
    XML文字列から弾幕を順に取り出す

    Args:
        xml_text: 弾幕XML

    Yields:
        Danmaku（ファイル内の順序のまま）

    Raises:
        ValueError: XMLの構文エラー、または<d>要素のp属性が不正
    """
    parser = ET.XMLPullParser(events=("end",))
    try:
        parser.feed(xml_text.lstrip())
        parser.close()
        # 構文エラーはイベント読み出し時に送出される
        events = list(parser.read_events())
    except ET.ParseError as e:
        raise ValueError(f"Failed to parse danmaku XML: {e}")

    for _, element in events:
        if element.tag != "d":
            continue

        p_attr = element.get("p")
        if p_attr is None:
            raise ValueError("<d> element has no p attribute, the XML file may be broken")

        danmaku = parse_p_attr(p_attr)
        if danmaku is None:
            continue

        yield Danmaku(
            timeline_s=danmaku.timeline_s,
            content=element.text or "",
            type=danmaku.type,
            fontsize=danmaku.fontsize,
            rgb=danmaku.rgb,
        )


def load_danmaku_from_file(xml_path: str) -> List[Danmaku]:
    """
    弾幕XMLファイルを読み込む

    Args:
        xml_path: XMLファイルのパス（UTF-8、BOM付きも可）

    Returns:
        弾幕のリスト

    Raises:
        FileNotFoundError: ファイルが見つからない
        ValueError: XMLが不正
    """
    if not os.path.exists(xml_path):
        raise FileNotFoundError(f"Danmaku XML not found: {xml_path}")

    with open(xml_path, "r", encoding="utf-8-sig") as f:
        xml_text = f.read()

    return list(iter_danmaku_from_string(xml_text))
