# Tests for HashXtract (HX) ReportEngine: TXT / CSV / PDF export.

import csv
import io
import os
import tempfile

import pytest

from hx.core.algorithms import AlgorithmId
from hx.core.compare import ComparisonEngine
from hx.core.orchestrator import FileHashReport

MD5_ABC = "900150983cd24fb0d6963f7d28e17f72"
SHA256_ABC = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def _sample_reports() -> list[FileHashReport]:
    return [
        FileHashReport(
            name="abc.txt",
            size_bytes=3,
            digests={AlgorithmId.MD5: MD5_ABC, AlgorithmId.SHA256: SHA256_ABC},
            duration_ms=1,
        ),
        FileHashReport(
            name="copy, of abc.txt",
            size_bytes=2048,
            digests={AlgorithmId.MD5: MD5_ABC},
            duration_ms=2,
        ),
    ]


# ═══════════════════════════════════════════════════════════════════════
# TXT export
# ═══════════════════════════════════════════════════════════════════════

class TestTxtExport:
    def test_contains_every_digest(self):
        from hx.report.report_engine import ReportEngine

        content = ReportEngine.export_txt(_sample_reports())
        assert content.startswith("FILE HASH REPORT")
        assert "Generated:" in content
        assert "File Name: abc.txt" in content
        assert "File Size: 2.00 KB" in content
        assert f"MD5: {MD5_ABC}" in content
        assert f"SHA256: {SHA256_ABC}" in content

    def test_without_timestamp(self):
        from hx.report.report_engine import ReportEngine

        content = ReportEngine.export_txt(_sample_reports(), include_timestamp=False)
        assert "Generated:" not in content

    def test_comparison_section(self):
        from hx.report.report_engine import ReportEngine

        reports = _sample_reports()
        comparison = ComparisonEngine().group_all(reports)
        content = ReportEngine.export_txt(reports, comparison=comparison)
        assert "COMPARISON" in content
        assert "MD5: all files identical" in content


# ═══════════════════════════════════════════════════════════════════════
# CSV export
# ═══════════════════════════════════════════════════════════════════════

class TestCsvExport:
    def test_header_and_rows(self):
        from hx.report.report_engine import ReportEngine

        content = ReportEngine.export_csv(_sample_reports())
        rows = list(csv.reader(io.StringIO(content)))

        assert rows[0] == ["File Name", "File Size", "MD5", "SHA256"]
        assert rows[1] == ["abc.txt", "3 B", MD5_ABC, SHA256_ABC]
        # Missing digest is left empty; comma in name survives quoting
        assert rows[2] == ["copy, of abc.txt", "2.00 KB", MD5_ABC, ""]

    def test_dict_reader_sees_header_first(self):
        from hx.report.report_engine import ReportEngine

        rows = list(csv.DictReader(io.StringIO(ReportEngine.export_csv(_sample_reports()))))
        assert len(rows) == 2
        assert rows[0]["File Name"] == "abc.txt"
        assert rows[0]["SHA256"] == SHA256_ABC
        assert rows[1]["File Name"] == "copy, of abc.txt"

    def test_written_csv_has_no_timestamp(self):
        from hx.report.report_engine import ReportEngine

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.csv")
            ReportEngine.write_report(_sample_reports(), path, include_timestamp=True)
            with open(path, encoding="utf-8", newline="") as f:
                first = f.readline()
        assert first == "File Name,File Size,MD5,SHA256\n"


# ═══════════════════════════════════════════════════════════════════════
# write_report dispatch / PDF
# ═══════════════════════════════════════════════════════════════════════

class TestWriteReport:
    def test_format_from_extension(self):
        from hx.report.report_engine import ReportEngine

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.csv")
            fmt = ReportEngine.write_report(_sample_reports(), path)
            assert fmt == "csv"
            with open(path, encoding="utf-8") as f:
                assert "File Name,File Size,MD5,SHA256" in f.read()

    def test_explicit_format_overrides_extension(self):
        from hx.report.report_engine import ReportEngine

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.dat")
            assert ReportEngine.write_report(_sample_reports(), path, "txt") == "txt"
            with open(path, encoding="utf-8") as f:
                assert f.read().startswith("FILE HASH REPORT")

    def test_unknown_format_rejected(self):
        from hx.report.report_engine import ReportEngine

        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ValueError, match="Unsupported export format"):
                ReportEngine.write_report(_sample_reports(), os.path.join(tmpdir, "x.xlsx"))

    def test_pdf_report_generated(self):
        from hx.report.report_engine import ReportEngine

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "nested", "report.pdf")
            reports = _sample_reports()
            ReportEngine.write_report(
                reports, path, comparison=ComparisonEngine().group_all(reports)
            )

            assert os.path.exists(path), "PDF report not created"
            with open(path, "rb") as f:
                assert f.read(5) == b"%PDF-"
