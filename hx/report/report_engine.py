# Author: Futhark1393
# Description: Report engine for HashXtract (HX).
# Features: TXT / CSV / PDF export of per-file digests with optional
#          cross-file comparison section.

import csv
import io
import os
import warnings
from datetime import datetime, timezone

from fpdf import FPDF

from hx.core.algorithms import AlgorithmId
from hx.core.settings import EXPORT_FORMATS
from hx.core.validation import format_bytes


def _algorithm_union(reports) -> list[AlgorithmId]:
    algorithms: list[AlgorithmId] = []
    for report in reports:
        for alg in report.digests:
            if alg not in algorithms:
                algorithms.append(alg)
    return algorithms


def _pdf_text(text: str) -> str:
    # Core PDF fonts are latin-1 only
    return text.encode("latin-1", "replace").decode("latin-1")


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


class ReportEngine:
    @staticmethod
    def export_txt(reports, include_timestamp: bool = True, comparison=None) -> str:
        lines = ["FILE HASH REPORT", "=" * 50, ""]
        if include_timestamp:
            lines += [f"Generated: {_timestamp()}", ""]

        for report in reports:
            lines.append(f"File Name: {report.name}")
            lines.append(f"File Size: {format_bytes(report.size_bytes)}")
            for alg, digest in report.digests.items():
                lines.append(f"{alg.label}: {digest}")
            lines.append("")

        if comparison:
            lines += ["COMPARISON", "-" * 50]
            for alg, group in comparison.items():
                if group.all_identical:
                    lines.append(f"{alg.label}: all files identical")
                    continue
                for digest, names in group.groups.items():
                    lines.append(f"{alg.label} {digest}: {', '.join(names)}")
            lines.append("")

        return "\n".join(lines)

    @staticmethod
    def export_csv(reports) -> str:
        """Header row first, then one row per file. Never carries a timestamp."""
        reports = list(reports)
        algorithms = _algorithm_union(reports)

        buf = io.StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(["File Name", "File Size"] + [alg.label for alg in algorithms])
        for report in reports:
            writer.writerow(
                [report.name, format_bytes(report.size_bytes)]
                + [report.digests.get(alg, "") for alg in algorithms]
            )
        return buf.getvalue()

    @staticmethod
    def export_pdf(reports, filepath: str, include_timestamp: bool = True, comparison=None) -> None:
        # fpdf2 still warns about the ln= parameter on some releases
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=DeprecationWarning)

            pdf = FPDF()
            pdf.add_page()
            pdf.set_auto_page_break(auto=True, margin=15)

            pdf.set_font("helvetica", "B", 16)
            pdf.cell(0, 12, "FILE HASH REPORT", border=1, ln=1, align="C")
            if include_timestamp:
                pdf.set_font("helvetica", "I", 9)
                pdf.cell(0, 6, f"Generated: {_timestamp()}", ln=1, align="C")
            pdf.ln(4)

            for index, report in enumerate(reports, start=1):
                pdf.set_font("helvetica", "B", 12)
                pdf.cell(0, 9, _pdf_text(f"{index}. {report.name}"), ln=1)
                pdf.set_font("helvetica", "", 10)
                pdf.cell(0, 6, f"Size: {format_bytes(report.size_bytes)}   "
                               f"Duration: {report.duration_ms} ms", ln=1)

                pdf.set_font("courier", "", 8)
                for alg, digest in report.digests.items():
                    pdf.multi_cell(0, 5, _pdf_text(f"{alg.label:<12}: {digest}"), border=1,
                                   new_x="LMARGIN", new_y="NEXT")
                pdf.ln(3)

            if comparison:
                pdf.set_font("helvetica", "B", 12)
                pdf.cell(0, 10, "COMPARISON", ln=1)
                for alg, group in comparison.items():
                    pdf.set_font("helvetica", "B", 10)
                    status = "ALL IDENTICAL" if group.all_identical else f"{len(group.groups)} distinct digest(s)"
                    pdf.cell(0, 7, f"{alg.label}: {status}", ln=1)
                    pdf.set_font("courier", "", 8)
                    for digest, names in group.groups.items():
                        pdf.multi_cell(0, 5, _pdf_text(f"{digest}\n  -> {', '.join(names)}"),
                                       new_x="LMARGIN", new_y="NEXT")

            pdf.ln(4)
            pdf.set_font("helvetica", "I", 8)
            pdf.cell(0, 6, "Auto-generated by HashXtract (HX)", ln=1, align="C")

            os.makedirs(os.path.dirname(os.path.abspath(filepath)), exist_ok=True)
            pdf.output(filepath)

    @staticmethod
    def write_report(reports, filepath: str, fmt: str | None = None,
                     include_timestamp: bool = True, comparison=None) -> str:
        """
        Write *reports* to *filepath*. The format defaults to the file
        extension. Returns the format used.
        """
        fmt = (fmt or os.path.splitext(filepath)[1].lstrip(".") or "txt").lower()
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt!r}")

        reports = list(reports)
        if fmt == "pdf":
            ReportEngine.export_pdf(reports, filepath, include_timestamp, comparison)
            return fmt

        if fmt == "csv":
            content = ReportEngine.export_csv(reports)
        else:
            content = ReportEngine.export_txt(reports, include_timestamp, comparison)

        os.makedirs(os.path.dirname(os.path.abspath(filepath)), exist_ok=True)
        with open(filepath, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        return fmt
