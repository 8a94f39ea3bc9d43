# checksums.py

import struct
import zlib


# CRC-32 (ISO 3309), используется для проверки чанков PNG
def crc32(data) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


# Adler-32 (RFC 1950), контрольная сумма несжатых данных zlib-потока
def adler32(data) -> int:
    return zlib.adler32(data) & 0xFFFFFFFF


# Перевод 4 байт big-endian в число
def be_u32(raw) -> int:
    return struct.unpack(">I", bytes(raw))[0]


# LEN/NLEN в DEFLATE хранятся little-endian
def le_u16(raw) -> int:
    return struct.unpack("<H", bytes(raw))[0]
