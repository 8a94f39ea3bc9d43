import pandas as pd

from pngverify.driver import ABORTED, DONE, validate_file
from pngverify.findings import CRC_MISMATCH, PREMATURE_EOF
from pngverify.scan import (
    FILE_COLUMNS,
    FINDING_COLUMNS,
    file_row,
    finding_rows,
    iter_files,
    scan_directory,
    summarize,
    write_report_csv,
)

from pngfactory import minimal_png


def make_tree(root):
    (root / "nested").mkdir(parents=True)
    (root / "good.png").write_bytes(minimal_png())
    bad = bytearray(minimal_png())
    bad[-1] ^= 0xFF  # CRC чанка IEND
    (root / "nested" / "bad_crc.PNG").write_bytes(bytes(bad))
    (root / "short.png").write_bytes(minimal_png()[:20])
    (root / "notes.txt").write_text("not a png", encoding="utf-8")


def test_iter_files_filters_by_extension(tmp_path):
    make_tree(tmp_path)
    names = sorted(p.replace(str(tmp_path), "") for p in iter_files(str(tmp_path), [".png"]))
    assert len(names) == 3
    assert not any(n.endswith(".txt") for n in names)


def test_scan_directory_writes_csv(tmp_path):
    src = tmp_path / "src"
    make_tree(src)
    files_csv, findings_csv, count = scan_directory(str(src), str(tmp_path / "out"))
    assert count == 3

    files = pd.read_csv(files_csv).set_index("path")
    assert files.loc["good.png", "state"] == DONE
    assert bool(files.loc["good.png", "ok"]) is True
    assert files.loc["good.png", "width"] == 1
    assert files.loc["nested/bad_crc.PNG", "findings_count"] == 1
    assert files.loc["short.png", "state"] == ABORTED

    findings = pd.read_csv(findings_csv)
    assert sorted(findings["kind"]) == [CRC_MISMATCH, PREMATURE_EOF]
    crc_row = findings[findings["kind"] == CRC_MISMATCH].iloc[0]
    assert crc_row["chunk_type"] == "IEND"
    assert crc_row["chunk_index"] == 2


def test_summarize_counts_by_state(tmp_path):
    src = tmp_path / "src"
    make_tree(src)
    files_csv, _, _ = scan_directory(str(src), str(tmp_path / "out"))
    summary = summarize(files_csv)
    rows = {(r.state, bool(r.ok)): (r.files, r.findings) for r in summary.itertuples()}
    assert rows[(DONE, True)] == (1, 0)
    assert rows[(DONE, False)] == (1, 1)
    assert rows[(ABORTED, False)] == (1, 1)


def test_summarize_empty_scan(tmp_path):
    src = tmp_path / "empty"
    src.mkdir()
    files_csv, _, count = scan_directory(str(src), str(tmp_path / "out"))
    assert count == 0
    assert summarize(files_csv).empty


def test_report_rows_leave_missing_cells_empty(tmp_path):
    out = tmp_path / "rows.csv"
    rows = [
        {"path": "a.png", "state": "Unreadable", "ok": False, "findings_count": 0},
        {"path": "b.png", "state": DONE, "ok": True, "width": None, "extra": "dropped"},
    ]
    assert write_report_csv(out, FILE_COLUMNS, rows) == 2
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == ",".join(FILE_COLUMNS)
    assert lines[1] == "a.png,Unreadable,False,,0,,"
    assert lines[2] == "b.png,Done,True,,,,"


def test_finding_rows_carry_path_and_chunk(tmp_path):
    bad = bytearray(minimal_png())
    bad[-1] ^= 0xFF
    path = tmp_path / "bad.png"
    path.write_bytes(bytes(bad))
    result = validate_file(str(path))
    assert file_row("bad.png", result)["findings_count"] == 1
    [row] = finding_rows("bad.png", result.findings)
    assert set(row) == set(FINDING_COLUMNS)
    assert (row["path"], row["kind"], row["chunk_type"], row["fatal"]) == ("bad.png", CRC_MISMATCH, "IEND", False)
