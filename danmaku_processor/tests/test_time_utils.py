"""時間ユーティリティのテスト"""
import unittest
from danmaku_processor.utils.time_utils import (
    parse_time,
    format_time,
    ass_time_format
)


class TestTimeUtils(unittest.TestCase):
    """時間ユーティリティのテストケース"""

    def test_parse_time_hhmmss(self):
        """hh:mm:ss形式のパース"""
        self.assertEqual(parse_time("01:23:45"), 5025.0)
        self.assertEqual(parse_time("00:00:00"), 0.0)

    def test_parse_time_mmss(self):
        """mm:ss形式のパース"""
        self.assertEqual(parse_time("23:45"), 1425.0)
        self.assertEqual(parse_time("05:30"), 330.0)

    def test_parse_time_seconds_and_sign(self):
        """秒数のみ・負の値のパース"""
        self.assertEqual(parse_time("2.5"), 2.5)
        self.assertEqual(parse_time("-1.5"), -1.5)
        self.assertEqual(parse_time("-00:05"), -5.0)

    def test_parse_time_invalid(self):
        """不正な形式"""
        with self.assertRaises(ValueError):
            parse_time("abc")
        with self.assertRaises(ValueError):
            parse_time("1:2:3:4")

    def test_format_time(self):
        """秒数から時間文字列への変換"""
        self.assertEqual(format_time(5025.5, include_ms=False), "01:23:45")
        self.assertEqual(format_time(3661, include_ms=False), "01:01:01")
        self.assertTrue(format_time(5025.5).startswith("01:23:45."))

    def test_ass_time_format(self):
        """ASS形式の時間文字列"""
        self.assertEqual(ass_time_format(5025.5), "1:23:45.50")
        self.assertEqual(ass_time_format(0), "0:00:00.00")
        self.assertEqual(ass_time_format(10.25), "0:00:10.25")

    def test_ass_time_format_rounding(self):
        """1/100秒単位に丸め、繰り上がりは秒・分に反映する"""
        self.assertEqual(ass_time_format(1.15), "0:00:01.15")
        self.assertEqual(ass_time_format(0.734), "0:00:00.73")
        self.assertEqual(ass_time_format(59.999), "0:01:00.00")
        self.assertEqual(ass_time_format(3599.996), "1:00:00.00")

    def test_ass_time_format_negative(self):
        """負の値は0として扱う"""
        self.assertEqual(ass_time_format(-3.0), "0:00:00.00")


if __name__ == "__main__":
    unittest.main()
