"""bilibiliからの弾幕取得のテスト（通信はモック）"""
import os
import tempfile
import unittest
from unittest.mock import MagicMock

import requests

from danmaku_processor.constants import (
    BILIBILI_VIDEO_INFO_URL,
    BILIBILI_SEASON_INFO_URL,
    BILIBILI_DANMAKU_SEGMENT_URL,
    BILIBILI_USER_AGENT
)
from danmaku_processor.danmaku import DanmakuType
from danmaku_processor.steps.step1_input_type import BVInput, SeasonInput, EpisodeInput, FileInput
from danmaku_processor.steps.step2_fetch_danmaku import (
    create_session,
    request_api,
    resolve_video,
    resolve_season,
    resolve_source,
    download_danmaku_segment,
    download_danmaku,
    sanitize_filename,
    fetch_danmaku
)
from danmaku_processor.steps.step3_parse_danmaku import load_danmaku_from_file
from danmaku_processor.utils.danmaku_proto import DmSegMobileReply, decode_segment


VIDEO_INFO = {
    "code": 0,
    "data": {
        "title": "配信アーカイブ",
        "pages": [
            {"cid": 1001, "part": "前半", "duration": 3600},
            {"cid": 1002, "part": "後半", "duration": 1800},
        ],
    },
}

SEASON_INFO = {
    "code": 0,
    "result": {
        "season_id": 28296,
        "title": "番組",
        "episodes": [
            {"id": 473501, "cid": 2001, "long_title": "第一話", "duration": 1440000},
            {"id": 473502, "cid": 2002, "long_title": "第二話", "duration": 1435500},
        ],
    },
}


def make_segment(*elems) -> bytes:
    """(progress_ms, mode, color, content) のタプルからセグメントを作る"""
    reply = DmSegMobileReply()
    for i, (progress, mode, color, content) in enumerate(elems):
        reply.elems.add(
            id=100 + i,
            progress=progress,
            mode=mode,
            fontsize=25,
            color=color,
            midHash="abcd1234",
            content=content,
            ctime=1647777083,
            idStr=str(100 + i),
        )
    return reply.SerializeToString()


# 並べ替えの確認用に、2セグメント目にも早い時刻の弾幕を入れておく
SEGMENTS = {
    1: make_segment((1500, 1, 16777215, "草"), (359000, 5, 0xFF0000, "上部")),
    2: make_segment((360500, 1, 16777215, "後半"), (1000, 7, 16777215, "高級弾幕")),
}


def make_response(json_data=None, content=b"", status_code=200, content_type="application/json"):
    resp = MagicMock()
    resp.json.return_value = json_data
    resp.content = content
    resp.status_code = status_code
    resp.headers = {"Content-Type": content_type}
    resp.raise_for_status.return_value = None
    return resp


def make_session(segments=None):
    """URLごとに固定のレスポンスを返すセッション"""
    segments = SEGMENTS if segments is None else segments

    def fake_get(url, params=None, timeout=None):
        if url == BILIBILI_VIDEO_INFO_URL:
            return make_response(VIDEO_INFO)
        if url == BILIBILI_SEASON_INFO_URL:
            return make_response(SEASON_INFO)
        if url == BILIBILI_DANMAKU_SEGMENT_URL:
            index = params["segment_index"]
            if index not in segments:
                return make_response(status_code=304, content_type="")
            return make_response(content=segments[index], content_type="application/octet-stream")
        raise AssertionError(f"unexpected url: {url}")

    session = MagicMock()
    session.get.side_effect = fake_get
    return session


def segment_calls(session):
    return [
        call.kwargs["params"]["segment_index"]
        for call in session.get.call_args_list
        if call.args[0] == BILIBILI_DANMAKU_SEGMENT_URL
    ]


class TestRequestApi(unittest.TestCase):
    """API呼び出し"""

    def test_error_code(self):
        session = MagicMock()
        session.get.return_value = make_response({"code": -404, "message": "啥都木有"})
        with self.assertRaises(RuntimeError):
            request_api(session, BILIBILI_VIDEO_INFO_URL, {"bvid": "BV1"})

    def test_http_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(RuntimeError):
            request_api(session, BILIBILI_VIDEO_INFO_URL, {"bvid": "BV1"})

    def test_invalid_json(self):
        session = MagicMock()
        resp = make_response()
        resp.json.side_effect = ValueError("not json")
        session.get.return_value = resp
        with self.assertRaises(RuntimeError):
            request_api(session, BILIBILI_VIDEO_INFO_URL, {"bvid": "BV1"})


class TestResolve(unittest.TestCase):
    """取得対象の決定"""

    def test_resolve_video(self):
        session = make_session()
        source = resolve_video(session, "BV1z44y1E7m6")
        self.assertEqual(source.cid, 1001)
        self.assertEqual(source.title, "配信アーカイブ P1 前半")
        self.assertEqual(source.duration, 3600)

        source = resolve_video(session, "BV1z44y1E7m6", p=2)
        self.assertEqual(source.cid, 1002)
        self.assertEqual(source.title, "配信アーカイブ P2 後半")

    def test_resolve_video_page_out_of_range(self):
        with self.assertRaises(ValueError):
            resolve_video(make_session(), "BV1z44y1E7m6", p=3)

    def test_resolve_season(self):
        session = make_session()
        source = resolve_season(session, season_id=28296)
        self.assertEqual(source.cid, 2001)
        self.assertEqual(source.title, "番組 第一話")
        self.assertEqual(source.duration, 1440)

        source = resolve_season(session, episode_id=473502)
        self.assertEqual(source.cid, 2002)
        self.assertEqual(source.duration, 1435)

    def test_resolve_season_unknown_episode(self):
        with self.assertRaises(ValueError):
            resolve_season(make_session(), episode_id=1)

    def test_resolve_source(self):
        session = make_session()
        self.assertEqual(resolve_source(session, SeasonInput(season_id=28296)).cid, 2001)
        self.assertEqual(resolve_source(session, EpisodeInput(episode_id=473502)).cid, 2002)
        with self.assertRaises(ValueError):
            resolve_source(session, FileInput(path="a.xml"))


class TestDownloadDanmaku(unittest.TestCase):
    """セグメントのダウンロード"""

    def test_all_segments_are_requested(self):
        """6分ごとのセグメントをすべて取得する"""
        session = make_session()
        download_danmaku(session, 1001, 3600)
        self.assertEqual(segment_calls(session), list(range(1, 11)))

        session = make_session()
        download_danmaku(session, 1001, 361)
        self.assertEqual(segment_calls(session), [1, 2])

        # 長さが不明でも1セグメント目は取得する
        session = make_session()
        download_danmaku(session, 1001, 0)
        self.assertEqual(segment_calls(session), [1])

    def test_sorted_by_progress(self):
        elems = download_danmaku(make_session(), 1001, 720)
        self.assertEqual([elem.progress for elem in elems], [1000, 1500, 359000, 360500])

    def test_not_modified_is_empty(self):
        self.assertEqual(download_danmaku_segment(make_session(), 1001, 3), [])

    def test_json_response_is_error(self):
        session = MagicMock()
        session.get.return_value = make_response(
            {"code": -101, "message": "账号未登录"},
            content_type="application/json; charset=utf-8"
        )
        with self.assertRaises(RuntimeError):
            download_danmaku_segment(session, 1001, 1)

    def test_broken_segment(self):
        session = MagicMock()
        session.get.return_value = make_response(content=b"\x0a\x05ab", content_type="application/octet-stream")
        with self.assertRaises(RuntimeError):
            download_danmaku_segment(session, 1001, 1)

    def test_decode_segment(self):
        elems = decode_segment(SEGMENTS[1])
        self.assertEqual([elem.content for elem in elems], ["草", "上部"])
        self.assertEqual(elems[1].color, 0xFF0000)
        self.assertEqual(decode_segment(b""), [])


class TestFetchDanmaku(unittest.TestCase):
    """弾幕XMLの保存"""

    def test_fetch_and_save(self):
        session = make_session()
        with tempfile.TemporaryDirectory() as tmp_dir:
            output_path = fetch_danmaku(BVInput(bv="BV1z44y1E7m6", p=2), tmp_dir, session=session)
            self.assertEqual(output_path, os.path.join(tmp_dir, "配信アーカイブ P2 後半.xml"))
            self.assertEqual(segment_calls(session), [1, 2, 3, 4, 5])

            # 保存したXMLはそのまま読み込める（未対応のタイプは除外される）
            danmaku_list = load_danmaku_from_file(output_path)
            self.assertEqual([d.content for d in danmaku_list], ["草", "上部", "後半"])
            self.assertEqual([d.timeline_s for d in danmaku_list], [1.5, 359.0, 360.5])
            self.assertEqual(danmaku_list[1].type, DanmakuType.TOP)
            self.assertEqual(danmaku_list[1].rgb, (255, 0, 0))

    def test_fetch_failure_returns_none(self):
        session = MagicMock()
        session.get.return_value = make_response({"code": -400, "message": "请求错误"})
        with tempfile.TemporaryDirectory() as tmp_dir:
            self.assertIsNone(fetch_danmaku(BVInput(bv="BVbad"), tmp_dir, session=session))
            self.assertEqual(os.listdir(tmp_dir), [])

    def test_sanitize_filename(self):
        self.assertEqual(sanitize_filename('a/b:c*?"<>|'), "a_b_c______")
        self.assertEqual(sanitize_filename("  "), "danmaku")

    def test_create_session(self):
        session = create_session(sessdata="abc")
        self.assertEqual(session.headers["User-Agent"], BILIBILI_USER_AGENT)
        self.assertEqual(session.cookies.get("SESSDATA"), "abc")


if __name__ == "__main__":
    unittest.main()
