# config.py

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


# Определение путей к файлу конфигурации
CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
CONFIG_FILE = CONFIG_DIR / "pngverify.yaml"


# Загрузка файла конфигурации
# Если путь задан явно, файл обязан существовать; файл по умолчанию может отсутствовать
def load_cfg(path: str | Path | None = None) -> dict:
    cfg_path = Path(path) if path is not None else CONFIG_FILE
    if not cfg_path.is_file():
        if path is not None:
            raise FileNotFoundError(f"pngverify.yaml not found at: {cfg_path}")
        return {}
    with cfg_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}


# Вспомогательная функция для безопасного чтения вложенных ключей из конфигурации
def get(cfg: dict, path: str, default: Any = None) -> Any:
    # Достаем cfg['a']['b']['c'] по строке 'a.b.c'
    cur = cfg
    for k in path.split("."):
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur
