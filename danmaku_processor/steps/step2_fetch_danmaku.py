"""
ステップ2: bilibiliから弾幕を取得

動画（BV番号）または番組（ss / ep）の弾幕を6分ごとのセグメントで
すべてダウンロードし、bilibili形式の弾幕XMLとして保存する。
"""

import math
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from dotenv import load_dotenv

from danmaku_processor.constants import (
    BILIBILI_VIDEO_INFO_URL,
    BILIBILI_SEASON_INFO_URL,
    BILIBILI_DANMAKU_SEGMENT_URL,
    BILIBILI_SEGMENT_SECONDS,
    BILIBILI_USER_AGENT,
    BILIBILI_REQUEST_TIMEOUT,
)
from danmaku_processor.utils.danmaku_proto import decode_segment
from danmaku_processor.steps.step1_input_type import (
    InputType,
    BVInput,
    SeasonInput,
    EpisodeInput,
)


# XML 1.0 で使えない制御文字
_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


@dataclass
class DanmakuSource:
    """弾幕を取得する対象"""
    title: str
    cid: int
    duration: int  # 秒


def create_session(sessdata: Optional[str] = None) -> requests.Session:
    """
    bilibili API用のセッションを作成

    Args:
        sessdata: ログインCookie（Noneの場合は環境変数 BILIBILI_SESSDATA から取得、任意）
    """
    if sessdata is None:
        load_dotenv(dotenv_path=".env.local")
        sessdata = os.getenv("BILIBILI_SESSDATA")

    session = requests.Session()
    session.headers.update({
        "User-Agent": BILIBILI_USER_AGENT,
        "Referer": "https://www.bilibili.com/",
    })
    if sessdata:
        session.cookies.set("SESSDATA", sessdata, domain=".bilibili.com")
    return session


def request_api(
    session: requests.Session,
    url: str,
    params: Dict[str, Any]
) -> Dict[str, Any]:
    """
    bilibili APIを呼び出してJSONを返す

    Raises:
        RuntimeError: HTTPエラー、またはAPIがエラーコードを返した場合
    """
    try:
        resp = session.get(url, params=params, timeout=BILIBILI_REQUEST_TIMEOUT)
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as e:
        raise RuntimeError(f"Request to {url} failed: {e}")
    except ValueError as e:
        raise RuntimeError(f"Invalid JSON response from {url}: {e}")

    code = data.get("code", 0)
    if code != 0:
        raise RuntimeError(f"Bilibili API error: code={code}, message={data.get('message', '')}")
    return data


def resolve_video(session: requests.Session, bv: str, p: Optional[int] = None) -> DanmakuSource:
    """
    BV番号から弾幕の取得対象を決定

    Args:
        bv: BV番号
        p: 分P（1始まり、Noneの場合は1P）

    Raises:
        ValueError: 指定した分Pが存在しない
    """
    data = request_api(session, BILIBILI_VIDEO_INFO_URL, {"bvid": bv})["data"]
    pages = data.get("pages", [])
    page_num = p or 1
    if page_num < 1 or page_num > len(pages):
        raise ValueError(f"Video {bv} has only {len(pages)} pages, requested p={page_num}")

    page = pages[page_num - 1]
    title = data.get("title", bv)
    if len(pages) > 1 and page.get("part"):
        title = f"{title} P{page_num} {page['part']}"

    return DanmakuSource(
        title=title,
        cid=int(page["cid"]),
        duration=int(page.get("duration", 0)),
    )


def resolve_season(
    session: requests.Session,
    season_id: Optional[int] = None,
    episode_id: Optional[int] = None
) -> DanmakuSource:
    """
    番組（ss / ep）から弾幕の取得対象を決定

    ss指定の場合は第1話、ep指定の場合はそのエピソードを対象とする。

    Raises:
        ValueError: エピソードが見つからない
    """
    if episode_id is not None:
        params = {"ep_id": episode_id}
    else:
        params = {"season_id": season_id}

    result = request_api(session, BILIBILI_SEASON_INFO_URL, params).get("result")
    if not result:
        raise RuntimeError("Bilibili API returned an empty season result")

    episodes = result.get("episodes", [])
    if not episodes:
        raise ValueError(f"No episodes found for {params}")

    if episode_id is None:
        episode = episodes[0]
    else:
        matched = [ep for ep in episodes if int(ep.get("id", -1)) == episode_id]
        if not matched:
            raise ValueError(f"Episode ep{episode_id} not found in season {result.get('season_id')}")
        episode = matched[0]

    season_title = result.get("title", "")
    episode_title = episode.get("long_title") or episode.get("title", "")
    title = f"{season_title} {episode_title}".strip()

    return DanmakuSource(
        title=title,
        cid=int(episode["cid"]),
        duration=int(episode.get("duration", 0)) // 1000,  # ミリ秒
    )


def resolve_source(session: requests.Session, input_type: InputType) -> DanmakuSource:
    """入力種別から弾幕の取得対象を決定"""
    if isinstance(input_type, BVInput):
        return resolve_video(session, input_type.bv, input_type.p)
    if isinstance(input_type, SeasonInput):
        return resolve_season(session, season_id=input_type.season_id)
    if isinstance(input_type, EpisodeInput):
        return resolve_season(session, episode_id=input_type.episode_id)
    raise ValueError(f"Input is not a bilibili video: {input_type}")


def download_danmaku_segment(session: requests.Session, cid: int, segment_index: int) -> List:
    """
    6分ぶんの弾幕セグメントをダウンロード

    Args:
        cid: 動画（分P・エピソード）のcid
        segment_index: セグメント番号（1始まり）

    Returns:
        DanmakuElem のリスト（304の場合は空）

    Raises:
        RuntimeError: ダウンロードに失敗した、またはAPIがエラーを返した場合
    """
    try:
        resp = session.get(
            BILIBILI_DANMAKU_SEGMENT_URL,
            params={"oid": cid, "segment_index": segment_index, "type": 1},
            timeout=BILIBILI_REQUEST_TIMEOUT
        )
        # 弾幕の無いセグメントは 304 が返る
        if resp.status_code == 304:
            return []
        resp.raise_for_status()
    except requests.RequestException as e:
        raise RuntimeError(f"Failed to download danmaku for cid={cid} segment={segment_index}: {e}")

    content_type = resp.headers.get("Content-Type", "")
    if content_type.startswith("application/json"):
        try:
            data = resp.json()
        except ValueError:
            data = {}
        raise RuntimeError(
            f"Bilibili API error for cid={cid} segment={segment_index}: "
            f"code={data.get('code')}, message={data.get('message', '')}"
        )

    try:
        return decode_segment(resp.content)
    except ValueError as e:
        raise RuntimeError(f"Invalid danmaku segment for cid={cid} segment={segment_index}: {e}")


def download_danmaku(session: requests.Session, cid: int, duration: int) -> List:
    """
    動画の全セグメントの弾幕をダウンロード

    Args:
        cid: 動画（分P・エピソード）のcid
        duration: 動画の長さ（秒）

    Returns:
        時刻順に並べた DanmakuElem のリスト
    """
    segment_count = max(1, math.ceil(duration / BILIBILI_SEGMENT_SECONDS))
    elems = []
    for segment_index in range(1, segment_count + 1):
        elems.extend(download_danmaku_segment(session, cid, segment_index))

    elems.sort(key=lambda elem: elem.progress)
    return elems


def danmaku_elems_to_xml(elems: List, cid: int) -> str:
    """
    DanmakuElem をbilibili形式の弾幕XMLに変換

    p属性は "時間,タイプ,サイズ,色,送信時刻,弾幕プール,ユーザーハッシュ,ID"。
    """
    root = ET.Element("i")
    ET.SubElement(root, "chatserver").text = "chat.bilibili.com"
    ET.SubElement(root, "chatid").text = str(cid)

    for elem in elems:
        p_attr = ",".join([
            f"{elem.progress / 1000:.3f}",
            str(elem.mode),
            str(elem.fontsize),
            str(elem.color),
            str(elem.ctime),
            str(elem.pool),
            elem.midHash,
            elem.idStr or str(elem.id),
        ])
        d = ET.SubElement(root, "d", p=p_attr)
        d.text = _INVALID_XML_CHARS.sub("", elem.content)

    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")


def sanitize_filename(title: str) -> str:
    """ファイル名に使えない文字を置き換える"""
    name = re.sub(r'[\\/:*?"<>|\r\n\t]', "_", title).strip()
    return name or "danmaku"


def fetch_danmaku(
    input_type: InputType,
    output_dir: str,
    session: Optional[requests.Session] = None
) -> Optional[str]:
    """
    bilibiliから弾幕XMLを取得して保存

    Args:
        input_type: BV / Season / Episode
        output_dir: XMLの保存先ディレクトリ
        session: 使用するセッション（Noneの場合は新規作成）

    Returns:
        保存したXMLのパス。取得に失敗した場合はNone
    """
    if session is None:
        session = create_session()

    try:
        source = resolve_source(session, input_type)
        print(f"  Title: {source.title}")
        print(f"  cid={source.cid}, duration={source.duration}s")
        elems = download_danmaku(session, source.cid, source.duration)
    except (RuntimeError, ValueError) as e:
        print(f"✗ Failed to fetch danmaku: {e}")
        return None

    print(f"  Downloaded {len(elems)} danmaku")
    xml_text = danmaku_elems_to_xml(elems, source.cid)

    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, f"{sanitize_filename(source.title)}.xml")
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(xml_text)

    print(f"✓ Danmaku downloaded: {output_path}")
    return output_path
