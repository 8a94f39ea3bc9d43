# cli.py

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from pngverify.config import get, load_cfg
from pngverify.driver import ABORTED, validate_stream
from pngverify.findings import BELL, ERROR_PREFIX, Report
from pngverify.scan import scan_directory, summarize

HUMAN = "human"
JSON = "json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pngverify",
        description="Verify chunk framing, CRC-32, zlib header and stored-block Adler-32 of a PNG file.",
    )
    parser.add_argument("path", nargs="?", help="PNG file to verify.")
    parser.add_argument("--cfg", default=None, help="Path to pngverify.yaml.")
    parser.add_argument("--format", choices=[HUMAN, JSON], default=None, help="Report format.")
    parser.add_argument(
        "--scan",
        nargs=2,
        metavar=("INPUT_DIR", "OUTPUT_DIR"),
        help="Verify every PNG under INPUT_DIR and write files.csv / findings.csv to OUTPUT_DIR.",
    )
    return parser


# Сообщение об ошибке в том же виде, что и ошибки в отчете
def _fail(message: str, bell: bool) -> int:
    print(f"{BELL if bell else ''}{ERROR_PREFIX}{message}\n")
    return 1


def _run_scan(input_dir: str, output_dir: str, cfg: dict, bell: bool) -> int:
    if not os.path.isdir(input_dir):
        return _fail(f"Directory not found: {input_dir}", bell)
    files_csv, findings_csv, count = scan_directory(input_dir, output_dir, cfg)
    print(f"Verified {count} files; wrote {files_csv} and {findings_csv}")
    if count:
        print(summarize(files_csv).to_string(index=False))
    return 0


# Точка входа для запуска через командную строку
def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.scan and args.path:
        parser.error("--scan takes no input file; pass either a path or --scan INPUT_DIR OUTPUT_DIR")

    try:
        cfg = load_cfg(args.cfg)
    except FileNotFoundError as exc:
        return _fail(str(exc), True)
    bell = bool(get(cfg, "report.bell", True))

    if args.scan:
        return _run_scan(args.scan[0], args.scan[1], cfg, bell)

    if not args.path:
        return _fail("Please supply filename on the command line as first argument", bell)

    fmt = args.format or get(cfg, "report.format", HUMAN)
    human = fmt != JSON
    if human:
        print(f"Input=[{args.path}]")

    try:
        f = open(args.path, "rb")
    except OSError:
        return _fail("Can't open file!", bell)

    with f:
        report = Report(echo=human, bell=bell)
        result = validate_stream(f, cfg, report)

    if not human:
        print(json.dumps({"input": args.path, **result.as_dict()}, indent=2))

    if result.state == ABORTED:
        return 1
    if result.findings and get(cfg, "cli.fail_on_findings", False):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
