# errors.py

from __future__ import annotations


# Базовое исключение валидатора
class PngVerifyError(Exception):
    pass


# Поток закончился раньше, чем был прочитан очередной элемент чанка (длина, тело, CRC)
class PrematureEOF(PngVerifyError):
    def __init__(self, what: str, expected: int, got: int) -> None:
        self.what = what
        self.expected = expected
        self.got = got
        super().__init__(f"Premature end of file while reading {what} (expected {expected} bytes, got {got})")


# Полезная нагрузка IHDR не равна 13 байтам
class MalformedIhdr(PngVerifyError):
    pass


# Обращение к полю за пределами полезной нагрузки чанка
class TruncatedPayload(PngVerifyError):
    def __init__(self, field: str, need: int, have: int) -> None:
        self.field = field
        self.need = need
        self.have = have
        super().__init__(f"{field} needs {need} bytes of payload, chunk has {have}")


__all__ = ["PngVerifyError", "PrematureEOF", "MalformedIhdr", "TruncatedPayload"]
