# idat.py

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from pngverify.checksums import adler32, be_u32, le_u16
from pngverify.errors import TruncatedPayload
from pngverify.findings import (
    ADLER_MISMATCH,
    FCHECK_MISMATCH,
    MISSING_IHDR,
    NLEN_MISMATCH,
    STORED_LENGTH_MISMATCH,
    TRUNCATED_IDAT,
    Finding,
    Report,
)
from pngverify.ihdr import ImageHeader

# Раскладка начала данных IDAT:
#  0  1  CMF
#  1  1  FLG
#  2  1  первый байт блока DEFLATE (BFINAL, BTYPE)
#  3  2  LEN  (little-endian, только для BTYPE=0)
#  5  2  NLEN (little-endian, только для BTYPE=0)
#  7  .. несжатые данные строк
# -4  4  Adler-32 (big-endian) в конце данных чанка
ZLIB_HEADER_OFF = 0
BLOCK_HEADER_OFF = 2
STORED_LENGTHS_OFF = 3
STORED_DATA_OFF = 7
TRAILER_LEN = 4

# BTYPE: 0 без сжатия, 1 фиксированный Хаффман, 2 динамический Хаффман, 3 ошибка
BTYPE_STORED = 0

# Число отсчетов на пиксель для каждого типа цвета
SAMPLES_PER_PIXEL = {
    0: 1,  # grayscale
    2: 3,  # RGB
    3: 1,  # palette index
    4: 2,  # grayscale + alpha
    6: 4,  # RGBA
}
# Для глубины < 8 бит несколько пикселей упаковываются в один байт
SUB_BYTE_SHIFT = {1: 3, 2: 2, 4: 1}


@dataclass(frozen=True)
class ZlibHeader:
    cmf: int
    flg: int

    @property
    def compression_method(self) -> int:
        return self.cmf & 0x0F

    @property
    def compression_info(self) -> int:
        return self.cmf >> 4

    @property
    def fcheck(self) -> int:
        return self.flg & 0x1F

    @property
    def fdict(self) -> int:
        return (self.flg & 0x20) >> 5

    @property
    def flevel(self) -> int:
        return self.flg >> 6

    @property
    def check_ok(self) -> bool:
        return (self.cmf * 256 + self.flg) % 31 == 0


@dataclass(frozen=True)
class DeflateBlockHeader:
    raw: int

    @property
    def bfinal(self) -> int:
        return self.raw & 1

    @property
    def btype(self) -> int:
        return (self.raw >> 1) & 3


class IdatView:
    """
    Типизированное представление данных чанка IDAT.

    Каждый метод доступа проверяет, что нужные байты лежат внутри данных
    чанка, и бросает ``TruncatedPayload`` вместо чтения за границей.
    Используется как контекстный менеджер: буфер освобождается при выходе.
    """

    def __init__(self, payload: bytes) -> None:
        self._buf = memoryview(payload)

    def __enter__(self) -> "IdatView":
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def release(self) -> None:
        self._buf.release()

    def _span(self, field: str, start: int, size: int) -> memoryview:
        end = start + size
        if start < 0 or end > len(self._buf):
            raise TruncatedPayload(field, end, len(self._buf))
        return self._buf[start:end]

    def zlib_header(self) -> ZlibHeader:
        cmf, flg = self._span("zlib header", ZLIB_HEADER_OFF, 2)
        return ZlibHeader(cmf, flg)

    def deflate_block_header(self) -> DeflateBlockHeader:
        return DeflateBlockHeader(self._span("deflate block header", BLOCK_HEADER_OFF, 1)[0])

    def stored_lengths(self) -> Tuple[int, int]:
        raw = self._span("stored block LEN/NLEN", STORED_LENGTHS_OFF, 4)
        return le_u16(raw[:2]), le_u16(raw[2:])

    def stored_data(self, length: int) -> memoryview:
        return self._span("stored block data", STORED_DATA_OFF, length)

    def trailer(self) -> int:
        # Adler-32 в последних 4 байтах данных чанка, но не раньше начала блока
        start = max(len(self._buf) - TRAILER_LEN, STORED_DATA_OFF)
        return be_u32(self._span("Adler-32 trailer", start, TRAILER_LEN))


# Ожидаемый размер несжатых данных изображения: строки с байтом фильтра, все строки сразу
def expected_stored_len(header: ImageHeader) -> int:
    row = header.width * SAMPLES_PER_PIXEL.get(header.color_type, 1)

    filler = 0
    shift = SUB_BYTE_SHIFT.get(header.bit_depth)
    if shift is not None:
        # неполный последний байт строки
        if row % (1 << shift):
            filler = 1
        row >>= shift
    elif header.bit_depth == 16:
        row *= 2

    return (row + filler + 1) * header.height


# Проверка заголовка zlib и блока DEFLATE без сжатия в данных одного чанка IDAT
# Ни одно несоответствие не прерывает следующие шаги проверки
def validate_idat(payload: bytes, header: Optional[ImageHeader], report: Report | None = None) -> List[Finding]:
    findings: List[Finding] = []

    def detail(text: str, depth: int = 1) -> None:
        if report is not None:
            report.detail(text, depth)

    def fail(kind: str, message: str) -> None:
        finding = Finding(kind, message)
        if report is not None:
            finding = report.error(finding)
        findings.append(finding)

    with IdatView(payload) as view:
        try:
            zh = view.zlib_header()
        except TruncatedPayload as exc:
            fail(TRUNCATED_IDAT, str(exc))
            return findings

        # 1. Заголовок zlib: CMF и FLG
        detail(f"CMF={zh.cmf}")
        detail(f"Compression Method={zh.compression_method}  (should always be 8 for PNG; 8=deflate)", 2)
        detail(f"Compression Info={zh.compression_info}  (7=32K window size)", 2)
        detail(f"FLG={zh.flg}")
        detail(f"FCHECK={zh.fcheck}  (check bits for CMF and FLG)", 2)
        if not zh.check_ok:
            fail(FCHECK_MISMATCH, "FCHECK checksum mismatch, not multiple of 31")
        detail(f"FDICT={zh.fdict}  (0=no preset dictionary)", 2)
        detail(f"FLEVEL={zh.flevel}  (2=use default algorithm)", 2)

        # 2. Первый блок DEFLATE
        try:
            block = view.deflate_block_header()
        except TruncatedPayload as exc:
            fail(TRUNCATED_IDAT, str(exc))
            return findings
        detail(f"Block Format: First Byte={block.raw}   First 3-bits that matter={block.raw & 7}")
        detail(f"BFINAL={block.bfinal}  (0=more blocks follow; 1=final block)", 2)
        detail(f"BTYPE={block.btype}  (0=no compression; 1=fixed Huffman; 2=dynamic Huffman; 3=error)", 2)

        # 3. Сжатые блоки (Хаффман) не проверяются
        if block.btype != BTYPE_STORED:
            return findings

        # 4a. LEN и NLEN
        try:
            length, nlen = view.stored_lengths()
        except TruncatedPayload as exc:
            fail(TRUNCATED_IDAT, str(exc))
            return findings
        detail(f"LEN={length}", 2)
        detail(f"NLEN={nlen}", 2)
        ones_complement = ~length & 0xFFFF
        if ones_complement != nlen:
            fail(NLEN_MISMATCH, f"One's complement of LEN ({ones_complement}) is not equal to NLEN ({nlen})")

        # 4b. Длина по геометрии из IHDR
        if header is None:
            fail(MISSING_IHDR, "No IHDR decoded before IDAT; uncompressed data length not checked")
        else:
            expected = expected_stored_len(header)
            if length != expected:
                fail(
                    STORED_LENGTH_MISMATCH,
                    f"Mismatch with uncompressed data length ({length}) and expected length ({expected})",
                )

        # 4c. Adler-32 несжатых данных
        try:
            computed = adler32(view.stored_data(length))
            stored = view.trailer()
        except TruncatedPayload as exc:
            fail(TRUNCATED_IDAT, str(exc))
            return findings
        detail(f"FileAdler32={stored}  ComputedAdler32={computed}", 2)
        if stored != computed:
            fail(ADLER_MISMATCH, "ADLER-32 MISMATCH")

    return findings


__all__ = [
    "ZlibHeader",
    "DeflateBlockHeader",
    "IdatView",
    "expected_stored_len",
    "validate_idat",
]
