# ihdr.py

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Dict, List

from pngverify.errors import MalformedIhdr
from pngverify.findings import ILLEGAL_BIT_DEPTH, Finding

# Длина данных IHDR: width(4) height(4) bit_depth color_type comp filter interlace
IHDR_LEN = 13
IHDR_FMT = ">IIBBBBB"

# Допустимые глубины цвета для каждого типа цвета (PNG, раздел 11.2.2)
ALLOWED_BIT_DEPTHS = {
    0: (1, 2, 4, 8, 16),  # grayscale
    2: (8, 16),           # RGB
    3: (1, 2, 4, 8),      # palette
    4: (8, 16),           # grayscale + alpha
    6: (8, 16),           # RGBA
}


@dataclass(frozen=True)
class ImageHeader:
    width: int
    height: int
    bit_depth: int
    color_type: int
    compression_method: int
    filter_method: int
    interlace_method: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "bit_depth": self.bit_depth,
            "color_type": self.color_type,
            "compression_method": self.compression_method,
            "filter_method": self.filter_method,
            "interlace_method": self.interlace_method,
        }


# Разбор данных чанка IHDR
def decode_ihdr(payload: bytes) -> ImageHeader:
    if len(payload) != IHDR_LEN:
        raise MalformedIhdr(f"IHDR payload must be {IHDR_LEN} bytes, got {len(payload)}")
    return ImageHeader(*struct.unpack(IHDR_FMT, payload))


# Строки с полями заголовка для отчета
def describe_ihdr(header: ImageHeader) -> List[str]:
    return [
        f"width={header.width}",
        f"height={header.height}",
        f"bit_depth={header.bit_depth}",
        f"color_type={header.color_type}",
        # метод сжатия 0: deflate с окном не более 32768 байт
        f"comp_method={header.compression_method}",
        f"filter_method={header.filter_method}",
        f"interlace_method={header.interlace_method}",
    ]


# Проверка сочетания color_type и bit_depth (включается в конфиге, по умолчанию выключена)
def check_ihdr_legality(header: ImageHeader) -> List[Finding]:
    allowed = ALLOWED_BIT_DEPTHS.get(header.color_type)
    if allowed is None:
        return [Finding(ILLEGAL_BIT_DEPTH, f"Unknown color type ({header.color_type})")]
    if header.bit_depth not in allowed:
        return [
            Finding(
                ILLEGAL_BIT_DEPTH,
                f"Bit depth {header.bit_depth} is not allowed for color type {header.color_type}; "
                f"allowed={list(allowed)}",
            )
        ]
    return []


__all__ = ["ImageHeader", "decode_ihdr", "describe_ihdr", "check_ihdr_legality"]
