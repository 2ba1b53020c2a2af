"""ASS生成のテスト"""
import io
import os
import tempfile
import unittest

from danmaku_processor.canvas.canvas import CanvasConfig
from danmaku_processor.danmaku import Danmaku, DanmakuType
from danmaku_processor.steps.step5_generate_ass import (
    ass_alpha,
    ass_color,
    escape_ass_text,
    generate_ass_header,
    convert_danmaku,
    generate_ass_from_file
)


def make_config(**kwargs) -> CanvasConfig:
    """1レーン、全角1文字=25px"""
    params = dict(width=1280, height=720, lane_size=360, float_percentage=0.5, font_size=25, width_ratio=1.0)
    params.update(kwargs)
    return CanvasConfig(**params)


def dialogue_lines(ass_text: str):
    return [line for line in ass_text.splitlines() if line.startswith("Dialogue:")]


class TestAssHelpers(unittest.TestCase):
    """ASSの書式変換"""

    def test_ass_alpha(self):
        self.assertEqual(ass_alpha(1.0), "00")
        self.assertEqual(ass_alpha(0.0), "FF")
        self.assertEqual(ass_alpha(0.6), "66")
        self.assertEqual(ass_alpha(2.0), "00")

    def test_ass_color(self):
        self.assertEqual(ass_color((0x12, 0x34, 0x56)), "&H563412&")

    def test_escape(self):
        self.assertEqual(escape_ass_text("{好}好\\好"), "\\{好\\}好\\\\好")
        self.assertEqual(escape_ass_text("呵\n呵"), "呵\\N呵")

    def test_header(self):
        header = generate_ass_header(make_config(alpha=0.6, bold=True, outline=0.8, font="黑体", font_size=36), "test")
        self.assertIn("Title: test", header)
        self.assertIn("PlayResX: 1280", header)
        self.assertIn("PlayResY: 720", header)
        self.assertIn("Style: Float,黑体,36,&H66FFFFFF,&H66FFFFFF,&H66000000,&H66000000,-1,", header)
        self.assertIn(",0.8,0,7,", header)
        self.assertTrue(header.rstrip().endswith("Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"))


class TestConvertDanmaku(unittest.TestCase):
    """弾幕からASSへの変換"""

    def test_dialogue(self):
        output = io.StringIO()
        stats = convert_danmaku([Danmaku(timeline_s=1.0, content="弹弹")], output, make_config())
        lines = dialogue_lines(output.getvalue())
        self.assertEqual(lines, ["Dialogue: 2,0:00:01.00,0:00:11.00,Float,,0,0,0,,{\\move(1280,0,-50,0)}弹弹"])
        self.assertEqual(stats.drawn, 1)

    def test_color_and_escape(self):
        output = io.StringIO()
        danmaku = Danmaku(timeline_s=0.0, content="{a}", rgb=(255, 0, 0))
        convert_danmaku([danmaku], output, make_config())
        line = dialogue_lines(output.getvalue())[0]
        self.assertTrue(line.endswith("{\\move(1280,0,-50,0)\\c&H0000FF&}\\{a\\}"))

    def test_fixed_mode_is_scrolled(self):
        output = io.StringIO()
        convert_danmaku([Danmaku(timeline_s=0.0, content="弹", type=DanmakuType.TOP)], output, make_config())
        self.assertIn("\\move(1280,0,-25,0)", dialogue_lines(output.getvalue())[0])

    def test_unsorted_input_and_stats(self):
        """入力は時刻順に並べ替え、除外・遅延・破棄を集計する"""
        danmaku_list = [
            Danmaku(timeline_s=0.0, content="弹" * 2),
            Danmaku(timeline_s=0.0, content="弹" * 4),
            Danmaku(timeline_s=0.0, content="NG弹"),     # NGワード
            Danmaku(timeline_s=0.0, content="弹" * 80),
            Danmaku(timeline_s=-1.0, content="弹"),      # 負の時刻なので捨てる
        ]
        output = io.StringIO()
        stats = convert_danmaku(danmaku_list, output, make_config(time_offset=0.0), deny_list=["NG"])
        self.assertEqual(stats.total, 5)
        self.assertEqual(stats.filtered, 1)
        self.assertEqual(stats.drawn + stats.dropped, 4)

        lines = dialogue_lines(output.getvalue())
        self.assertEqual(len(lines), stats.drawn)
        # 負の時刻の弾幕は捨てる
        self.assertNotIn("}弹\n", output.getvalue())

    def test_stats_counts(self):
        danmaku_list = [
            Danmaku(timeline_s=0.0, content="弹" * 4),
            Danmaku(timeline_s=0.0, content="弹" * 2),
            Danmaku(timeline_s=5.0, content="弹" * 80),
            Danmaku(timeline_s=5.0, content="弹"),
        ]
        output = io.StringIO()
        stats = convert_danmaku(danmaku_list, output, make_config())
        self.assertEqual(stats.total, 4)
        self.assertEqual(stats.filtered, 0)
        self.assertEqual(stats.drawn, 3)
        self.assertEqual(stats.delayed, 1)
        self.assertEqual(stats.dropped, 1)
        self.assertAlmostEqual(stats.drawn_ratio, 0.75)

    def test_generate_from_file(self):
        xml = '<i><d p="2.0,1,25,16777215">弹弹</d><d p="1.0,1,25,16777215">草</d></i>'
        with tempfile.TemporaryDirectory() as tmp_dir:
            xml_path = os.path.join(tmp_dir, "live.xml")
            ass_path = os.path.join(tmp_dir, "live.ass")
            with open(xml_path, "w", encoding="utf-8") as f:
                f.write(xml)

            stats = generate_ass_from_file(xml_path, ass_path, config=make_config(height=720, lane_size=360, float_percentage=1.0))
            self.assertEqual(stats.drawn, 2)

            with open(ass_path, "r", encoding="utf-8") as f:
                content = f.read()
            self.assertIn("Title: live", content)
            lines = dialogue_lines(content)
            self.assertTrue(lines[0].startswith("Dialogue: 2,0:00:01.00,"))
            self.assertTrue(lines[1].startswith("Dialogue: 2,0:00:02.00,"))


if __name__ == "__main__":
    unittest.main()
