"""時間変換ユーティリティ"""
from datetime import timedelta


def parse_time(time_str: str) -> float:
    """
    時間文字列を秒数（float）に変換

    Args:
        time_str: "hh:mm:ss" / "mm:ss" / "ss" 形式の時間文字列。先頭に "-" を付けると負の値

    Returns:
        秒数（float）

    Examples:
        >>> parse_time("01:23:45")
        5025.0
        >>> parse_time("23:45")
        1425.0
        >>> parse_time("-1.5")
        -1.5
    """
    text = time_str.strip()
    sign = 1.0
    if text.startswith("-"):
        sign = -1.0
        text = text[1:]

    parts = text.split(":")
    try:
        if len(parts) == 3:
            hours, minutes, seconds = parts
            value = float(hours) * 3600 + float(minutes) * 60 + float(seconds)
        elif len(parts) == 2:
            minutes, seconds = parts
            value = float(minutes) * 60 + float(seconds)
        elif len(parts) == 1:
            value = float(parts[0])
        else:
            raise ValueError(f"Invalid time format: {time_str}")
    except ValueError:
        raise ValueError(f"Invalid time format: {time_str}")

    return sign * value


def format_time(seconds: float, include_ms: bool = True) -> str:
    """
    秒数を時間文字列に変換

    Args:
        seconds: 秒数
        include_ms: ミリ秒を含めるかどうか

    Returns:
        "hh:mm:ss" または "hh:mm:ss.mmm" 形式の文字列

    Examples:
        >>> format_time(5025.5)
        '01:23:45.500'
        >>> format_time(5025.5, include_ms=False)
        '01:23:45'
    """
    td = timedelta(seconds=seconds)
    total_seconds = int(td.total_seconds())
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60

    if include_ms:
        ms = int((seconds - int(seconds)) * 1000)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}.{ms:03d}"
    else:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def ass_time_format(seconds: float) -> str:
    """
    ASS字幕フォーマット用の時間文字列を生成

    Args:
        seconds: 秒数（負の値は0として扱う）

    Returns:
        "h:mm:ss.cc" 形式の文字列（ASSは1/100秒単位、四捨五入）

    Examples:
        >>> ass_time_format(5025.5)
        '1:23:45.50'
        >>> ass_time_format(1.15)
        '0:00:01.15'
    """
    if seconds < 0:
        seconds = 0.0
    total_centisecs = round(seconds * 100)
    total_seconds, centisecs = divmod(total_centisecs, 100)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60

    return f"{hours}:{minutes:02d}:{secs:02d}.{centisecs:02d}"
