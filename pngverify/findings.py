# findings.py

from __future__ import annotations

import sys
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, TextIO

# Виды обнаруженных дефектов
SIGNATURE_MISMATCH = "SignatureMismatch"
PREMATURE_EOF = "PrematureEOF"
CRC_MISMATCH = "CrcMismatch"
MALFORMED_IHDR = "MalformedIhdr"
ILLEGAL_BIT_DEPTH = "IllegalBitDepth"
FCHECK_MISMATCH = "FcheckMismatch"
NLEN_MISMATCH = "NlenMismatch"
STORED_LENGTH_MISMATCH = "StoredLengthMismatch"
ADLER_MISMATCH = "AdlerMismatch"
TRUNCATED_IDAT = "TruncatedIdat"
MISSING_IHDR = "MissingIhdr"
TOO_MANY_CHUNKS = "TooManyChunks"

# Дефекты, после которых обход потока прекращается
FATAL_KINDS = {PREMATURE_EOF, TOO_MANY_CHUNKS}

# Типы строк отчета
SUMMARY = "summary"
DETAIL = "detail"
ERROR = "error"

BELL = "\a"
ERROR_PREFIX = "!!! ERROR !!! "


@dataclass(frozen=True)
class Finding:
    kind: str
    message: str
    chunk_index: Optional[int] = None
    chunk_type: Optional[str] = None

    @property
    def fatal(self) -> bool:
        return self.kind in FATAL_KINDS

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "chunk_index": self.chunk_index,
            "chunk_type": self.chunk_type,
            "fatal": self.fatal,
        }


@dataclass(frozen=True)
class Entry:
    level: str
    text: str
    depth: int = 0
    finding: Optional[Finding] = None


class Report:
    """
    Упорядоченный журнал проверки одного потока.

    Хранит строки трех видов (сводка по чанку, детали, ошибки) в порядке
    появления. При ``echo=True`` каждая строка сразу печатается в ``out``
    в человекочитаемом виде, как это делала исходная консольная утилита.
    """

    def __init__(self, *, echo: bool = False, out: TextIO | None = None, bell: bool = True) -> None:
        self.echo = echo
        self.out = out
        self.bell = bell
        self.entries: List[Entry] = []
        self._chunk_index: Optional[int] = None
        self._chunk_type: Optional[str] = None

    # Все последующие ошибки относятся к этому чанку
    def begin_chunk(self, index: int, chunk_type: str) -> None:
        self._chunk_index = index
        self._chunk_type = chunk_type

    def end_chunk(self) -> None:
        self._chunk_index = None
        self._chunk_type = None

    def summary(self, text: str) -> None:
        self._append(Entry(SUMMARY, text))

    def detail(self, text: str, depth: int = 1) -> None:
        self._append(Entry(DETAIL, text, depth))

    def error(self, finding: Finding) -> Finding:
        if finding.chunk_index is None and self._chunk_index is not None:
            finding = replace(finding, chunk_index=self._chunk_index, chunk_type=self._chunk_type)
        self._append(Entry(ERROR, finding.message, finding=finding))
        return finding

    @property
    def findings(self) -> List[Finding]:
        return [e.finding for e in self.entries if e.finding is not None]

    def lines(self) -> List[str]:
        return [self.render(e) for e in self.entries]

    def render(self, entry: Entry) -> str:
        if entry.level == ERROR:
            prefix = BELL if self.bell else ""
            # пустая строка после ошибки, как в исходной утилите
            return f"{prefix}{ERROR_PREFIX}{entry.text}\n"
        if entry.level == DETAIL:
            return "\t" * entry.depth + " " + entry.text
        return entry.text

    def _append(self, entry: Entry) -> None:
        self.entries.append(entry)
        if self.echo:
            print(self.render(entry), file=self.out or sys.stdout)


__all__ = [
    "Finding",
    "Entry",
    "Report",
    "SIGNATURE_MISMATCH",
    "PREMATURE_EOF",
    "CRC_MISMATCH",
    "MALFORMED_IHDR",
    "ILLEGAL_BIT_DEPTH",
    "FCHECK_MISMATCH",
    "NLEN_MISMATCH",
    "STORED_LENGTH_MISMATCH",
    "ADLER_MISMATCH",
    "TRUNCATED_IDAT",
    "MISSING_IHDR",
    "TOO_MANY_CHUNKS",
]
