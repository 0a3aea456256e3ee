"""颜色工具函数。"""

from __future__ import annotations

import re
from typing import Tuple

from image_repack.core.exceptions import ValidationError

RGBA = Tuple[int, int, int, int]

HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

NAMED_COLORS: dict[str, RGBA] = {
    "white": (255, 255, 255, 255),
    "black": (0, 0, 0, 255),
    "gray": (128, 128, 128, 255),
    "grey": (128, 128, 128, 255),
    "transparent": (255, 255, 255, 0),
}


def resolve_padding_color(value: str) -> RGBA:
    """将颜色名称或 HEX 字符串解析为 RGBA 四元组。"""

    if not value or not value.strip():
        raise ValidationError("颜色值不能为空")

    name = value.strip().lower()
    if name in NAMED_COLORS:
        return NAMED_COLORS[name]

    match = HEX_COLOR_RE.match(name)
    if not match:
        raise ValidationError(f"无法解析颜色值: {value}")

    hex_value = match.group(1)
    if len(hex_value) == 3:
        hex_value = "".join(ch * 2 for ch in hex_value)
    if len(hex_value) == 6:
        hex_value += "ff"

    r = int(hex_value[0:2], 16)
    g = int(hex_value[2:4], 16)
    b = int(hex_value[4:6], 16)
    a = int(hex_value[6:8], 16)
    return r, g, b, a
