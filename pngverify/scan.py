# scan.py

from __future__ import annotations

import csv
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

import pandas as pd

from pngverify.config import get
from pngverify.driver import RunResult, validate_file
from pngverify.findings import Finding, Report

FILES_CSV = "files.csv"
FINDINGS_CSV = "findings.csv"
UNREADABLE = "Unreadable"

FILE_COLUMNS = ["path", "state", "ok", "chunk_count", "findings_count", "width", "height"]
FINDING_COLUMNS = ["path", "kind", "chunk_index", "chunk_type", "fatal", "message"]


# Итератор для рекурсивного обхода файлов в директории (фильтр по расширению)
def iter_files(root_dir: str, extensions: Iterable[str]) -> Iterable[str]:
    exts = {e.lower() for e in extensions}
    for dirpath, _, filenames in os.walk(root_dir):
        for name in sorted(filenames):
            if exts and os.path.splitext(name)[1].lower() not in exts:
                continue
            yield os.path.join(dirpath, name)


# Строка files.csv по результату проверки одного файла
def file_row(rel: str, result: RunResult) -> Dict[str, Any]:
    header = result.header
    return {
        "path": rel,
        "state": result.state,
        "ok": result.ok,
        "chunk_count": result.chunk_count,
        "findings_count": len(result.findings),
        "width": header.width if header is not None else None,
        "height": header.height if header is not None else None,
    }


# Строки findings.csv: по одной на каждый дефект файла
def finding_rows(rel: str, findings: Iterable[Finding]) -> List[Dict[str, Any]]:
    return [{"path": rel, **finding.as_dict()} for finding in findings]


# Запись строк отчета в CSV; отсутствующие колонки и None пишутся пустыми ячейками
def write_report_csv(out_path: Path, columns: List[str], rows: Iterable[Dict[str, Any]]) -> int:
    count = 0
    with out_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, restval="", extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: v for k, v in row.items() if v is not None})
            count += 1
    return count


# Проверка всех файлов директории, результаты пишутся в files.csv и findings.csv
def scan_directory(input_dir: str, output_dir: str, cfg: dict | None = None) -> Tuple[Path, Path, int]:
    cfg = cfg or {}
    extensions = get(cfg, "scan.extensions", [".png"]) or []
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    files: List[Dict[str, Any]] = []
    defects: List[Dict[str, Any]] = []
    for path in iter_files(input_dir, extensions):
        rel = os.path.relpath(path, start=input_dir).replace("\\", "/")
        # отчет не печатается, нужен только список дефектов
        try:
            result = validate_file(path, cfg, Report(echo=False))
        except OSError as exc:
            files.append({"path": rel, "state": UNREADABLE, "ok": False, "findings_count": 0})
            defects.append({"path": rel, "kind": UNREADABLE, "fatal": True, "message": str(exc)})
            continue
        files.append(file_row(rel, result))
        defects.extend(finding_rows(rel, result.findings))

    files_csv = out_dir / FILES_CSV
    findings_csv = out_dir / FINDINGS_CSV
    count = write_report_csv(files_csv, FILE_COLUMNS, files)
    write_report_csv(findings_csv, FINDING_COLUMNS, defects)
    return files_csv, findings_csv, count


# Сводка по files.csv: число файлов для каждого конечного состояния и признака ok
def summarize(files_csv: str | Path) -> pd.DataFrame:
    df = pd.read_csv(files_csv)
    if df.empty:
        return pd.DataFrame(columns=["state", "ok", "files", "findings"])
    return (
        df.groupby(["state", "ok"], as_index=False)
        .agg(files=("path", "count"), findings=("findings_count", "sum"))
        .sort_values(["state", "ok"])
        .reset_index(drop=True)
    )


__all__ = ["iter_files", "file_row", "finding_rows", "write_report_csv", "scan_directory", "summarize"]
