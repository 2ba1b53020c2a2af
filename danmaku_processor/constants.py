"""
Danmaku Processor 共通定数

アプリケーション全体で使用される定数を一元管理
"""

# ============================================================================
# 画面設定
# ============================================================================

# 出力ASSの解像度（PlayResX / PlayResY）
DEFAULT_SCREEN_WIDTH = 1280
DEFAULT_SCREEN_HEIGHT = 720


# ============================================================================
# 弾幕（スクロールコメント）設定
# ============================================================================

# 弾幕が画面を横切るのに要する時間（秒）
DEFAULT_DURATION = 10.0

# 1レーンの高さ（ピクセル）
DEFAULT_LANE_SIZE = 46

# スクロール弾幕が使用できる画面高さの割合（0.0〜1.0）
DEFAULT_FLOAT_PERCENTAGE = 0.5

# 弾幕幅の計算に掛ける係数。重なりが気になる場合は大きくする
DEFAULT_WIDTH_RATIO = 1.2

# 同じレーンの弾幕同士の最小水平間隔（ピクセル）
DEFAULT_HORIZONTAL_GAP = 0.0

# タイムラインのオフセット（秒）。正で遅らせ、負で早める
DEFAULT_TIME_OFFSET = 0.0

# 空きレーンが無い場合に許容する最大の遅延（秒）
DEFAULT_MAX_DELAY = 1.0

# 遅延させる際に追加する余白（秒）
DEFAULT_DELAY_PADDING = 0.01


# ============================================================================
# フォント・スタイル設定
# ============================================================================

DEFAULT_FONT_NAME = "黑体"

DEFAULT_FONT_SIZE = 36

# 不透明度（0.0: 完全に透明 〜 1.0: 不透明）
DEFAULT_ALPHA = 0.7

# 縁取り幅
DEFAULT_OUTLINE = 0.8

DEFAULT_BOLD = True

# ASSのスタイル名（スクロール弾幕用）
FLOAT_STYLE_NAME = "Float"


# ============================================================================
# bilibili API設定
# ============================================================================

BILIBILI_DOMAIN = "www.bilibili.com"

BILIBILI_VIDEO_INFO_URL = "https://api.bilibili.com/x/web-interface/view"
BILIBILI_SEASON_INFO_URL = "https://api.bilibili.com/pgc/view/web/season"
BILIBILI_DANMAKU_SEGMENT_URL = "https://api.bilibili.com/x/v2/dm/web/seg.so"

# 弾幕は6分ごとのセグメント（protobuf）で配信される
BILIBILI_SEGMENT_SECONDS = 360

BILIBILI_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/100.0.4896.60 Safari/537.36"
)

# HTTPリクエストのタイムアウト（秒）
BILIBILI_REQUEST_TIMEOUT = 10


# ============================================================================
# デフォルトディレクトリ
# ============================================================================

DEFAULT_OUTPUT_DIR = "data/output"
DEFAULT_TEMP_DIR = "data/temp"
