# driver.py

from __future__ import annotations

from typing import Any, BinaryIO, Dict, List, Optional

from pngverify.chunk_reader import next_chunk
from pngverify.config import get
from pngverify.errors import MalformedIhdr, PrematureEOF
from pngverify.findings import (
    CRC_MISMATCH,
    MALFORMED_IHDR,
    PREMATURE_EOF,
    SIGNATURE_MISMATCH,
    TOO_MANY_CHUNKS,
    Finding,
    Report,
)
from pngverify.idat import validate_idat
from pngverify.ihdr import ImageHeader, check_ihdr_legality, decode_ihdr, describe_ihdr

PNG_SIG = b"\x89PNG\r\n\x1a\n"
MAX_CHUNKS = 100000  # предохранитель от зацикливания на битых данных

# Состояния обхода потока
START = "Start"
READING = "ReadingChunks"
DONE = "Done"
ABORTED = "Aborted"


class RunResult:
    def __init__(
        self,
        state: str,
        report: Report,
        header: Optional[ImageHeader],
        chunk_types: List[str],
    ) -> None:
        self.state = state
        self.report = report
        self.header = header
        self.chunk_types = chunk_types

    @property
    def findings(self) -> List[Finding]:
        return self.report.findings

    @property
    def chunk_count(self) -> int:
        return len(self.chunk_types)

    # Успех: дошли до IEND и не нашли ни одного дефекта
    @property
    def ok(self) -> bool:
        return self.state == DONE and not self.findings

    def as_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "ok": self.ok,
            "chunk_count": self.chunk_count,
            "chunk_types": list(self.chunk_types),
            "header": self.header.as_dict() if self.header is not None else None,
            "findings": [f.as_dict() for f in self.findings],
        }


# Побайтовое сравнение сигнатуры; каждое расхождение отдельной ошибкой
def check_signature(head: bytes, report: Report) -> None:
    # недостающие байты считаются нулевыми
    head = head.ljust(len(PNG_SIG), b"\x00")
    for i, (expected, found) in enumerate(zip(PNG_SIG, head), start=1):
        if found != expected:
            report.error(
                Finding(SIGNATURE_MISMATCH, f"Header Byte {i} Mismatch; Expected={expected}, but Found={found}")
            )


class StreamDriver:
    """
    Обход потока PNG: сигнатура, затем чанки до IEND.

    Заголовок IHDR после разбора хранится здесь и явно передается
    в проверку каждого чанка IDAT. Ошибки в отдельных чанках только
    попадают в отчет; обход прерывается лишь при нехватке байт.
    """

    def __init__(self, cfg: dict | None = None, report: Report | None = None) -> None:
        self.cfg = cfg or {}
        self.report = report if report is not None else Report(bell=bool(get(self.cfg, "report.bell", True)))
        self.max_chunks = int(get(self.cfg, "walker.max_chunks", MAX_CHUNKS))
        self.check_legality = bool(get(self.cfg, "ihdr.check_legality", False))
        self.state = START
        self.header: Optional[ImageHeader] = None
        self.chunk_types: List[str] = []

    def run(self, stream: BinaryIO) -> RunResult:
        check_signature(stream.read(len(PNG_SIG)), self.report)
        self.state = READING

        while self.state == READING:
            if len(self.chunk_types) >= self.max_chunks:
                self.report.error(Finding(TOO_MANY_CHUNKS, f"More than {self.max_chunks} chunks without IEND"))
                self.state = ABORTED
                break
            try:
                chunk = next_chunk(stream)
            except PrematureEOF as exc:
                self._abort(str(exc))
                break
            if chunk is None:
                self._abort("Premature end of file encountered")
                break
            self._dispatch(chunk)

        return RunResult(self.state, self.report, self.header, self.chunk_types)

    def _abort(self, message: str) -> None:
        self.report.error(Finding(PREMATURE_EOF, message))
        self.state = ABORTED

    def _dispatch(self, chunk) -> None:
        index = len(self.chunk_types)
        self.chunk_types.append(chunk.type_name)
        self.report.begin_chunk(index, chunk.type_name)
        try:
            self.report.summary(chunk.summary_line())
            if not chunk.crc_ok:
                self.report.error(Finding(CRC_MISMATCH, "CRC MISMATCH"))

            if chunk.type == b"IHDR":
                self._handle_ihdr(chunk.payload)
            elif chunk.type == b"IDAT":
                validate_idat(chunk.payload, self.header, self.report)
            elif chunk.type == b"IEND":
                self.state = DONE
        finally:
            self.report.end_chunk()

    def _handle_ihdr(self, payload: bytes) -> None:
        try:
            header = decode_ihdr(payload)
        except MalformedIhdr as exc:
            self.report.error(Finding(MALFORMED_IHDR, str(exc)))
            return
        self.header = header
        for line in describe_ihdr(header):
            self.report.detail(line)
        if self.check_legality:
            for finding in check_ihdr_legality(header):
                self.report.error(finding)


# Проверка уже открытого бинарного потока
def validate_stream(stream: BinaryIO, cfg: dict | None = None, report: Report | None = None) -> RunResult:
    return StreamDriver(cfg, report).run(stream)


# Проверка файла по пути
def validate_file(path: str, cfg: dict | None = None, report: Report | None = None) -> RunResult:
    with open(path, "rb") as f:
        return validate_stream(f, cfg, report)


__all__ = [
    "PNG_SIG",
    "START",
    "READING",
    "DONE",
    "ABORTED",
    "RunResult",
    "StreamDriver",
    "check_signature",
    "validate_stream",
    "validate_file",
]
