# chunk_reader.py

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import BinaryIO, Dict, Optional

from pngverify.checksums import be_u32, crc32
from pngverify.errors import PrematureEOF

# Структура чанка: длина (4) + тип (4) + данные (length) + CRC (4)
LENGTH_LEN = 4
TYPE_LEN = 4
CRC_LEN = 4
# Максимальный размер одного чтения из потока
READ_CHUNK = 1 << 20

# Бит 5 (0x20) каждого байта типа задает свойство чанка
PROPERTY_BIT = 0x20
FLAG_NAMES = ("ancillary", "private", "reserved", "safe_to_copy")


@dataclass(frozen=True)
class ChunkRecord:
    type: bytes
    length: int
    payload: bytes
    crc: int

    @property
    def type_name(self) -> str:
        # непечатаемые байты типа выводятся в виде \xNN
        return "".join(chr(b) if 0x20 < b < 0x7F else f"\\x{b:02x}" for b in self.type)

    @cached_property
    def computed_crc(self) -> int:
        return crc32(self.type + self.payload)

    @property
    def crc_ok(self) -> bool:
        return self.crc == self.computed_crc

    @property
    def flags(self) -> Dict[str, int]:
        return chunk_flags(self.type)

    def summary_line(self) -> str:
        f = self.flags
        return (
            f"Chunk={self.type_name}  Ancillary={f['ancillary']} Private={f['private']} "
            f"Reserved={f['reserved']} SafeToCopy={f['safe_to_copy']}  Length={self.length}  "
            f"FileCRC={self.crc}  ComputedCRC={self.computed_crc}"
        )


# Флаги свойств по 4 байтам типа чанка
def chunk_flags(chunk_type: bytes) -> Dict[str, int]:
    return {
        name: (chunk_type[i] & PROPERTY_BIT) >> 5 if i < len(chunk_type) else 0
        for i, name in enumerate(FLAG_NAMES)
    }


# Чтение ровно size байт блоками не больше READ_CHUNK; при коротком чтении PrematureEOF
# Заявленная длина не доверяется: память растет только по мере прихода данных
def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    data = bytearray()
    while len(data) < size:
        piece = stream.read(min(READ_CHUNK, size - len(data)))
        if not piece:
            raise PrematureEOF(what, size, len(data))
        data.extend(piece)
    return bytes(data)


# Чтение очередного чанка из потока
# Возвращает None, если поток закончился ровно на границе чанка
def next_chunk(stream: BinaryIO) -> Optional[ChunkRecord]:
    raw_len = stream.read(LENGTH_LEN)
    if not raw_len:
        return None
    if len(raw_len) < LENGTH_LEN:
        raise PrematureEOF("chunk length", LENGTH_LEN, len(raw_len))
    length = be_u32(raw_len)

    # Тип и данные читаются одним блоком, по ним же считается CRC
    body = _read_exact(stream, TYPE_LEN + length, "chunk type and data")
    crc = be_u32(_read_exact(stream, CRC_LEN, "chunk CRC"))

    return ChunkRecord(type=body[:TYPE_LEN], length=length, payload=body[TYPE_LEN:], crc=crc)


__all__ = ["ChunkRecord", "chunk_flags", "next_chunk"]
