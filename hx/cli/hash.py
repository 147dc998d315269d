#!/usr/bin/env python3
# Author: Futhark1393
# Description: hx-hash: headless multi-algorithm file hashing with
# comparison, digest matching, export and an optional audit trail.
#
# Usage:
#   hx-hash image.raw
#   hx-hash a.iso b.iso c.iso --algo md5 --algo sha256 --compare
#   hx-hash file.bin --algo hmac-sha256 --hmac-key secret
#   hx-hash file.bin --match 900150983CD24FB0D6963F7D28E17F72
#   hx-hash *.bin --export results.csv --audit-dir ./audit
#   hx-hash --generate-key ./keys
#   hx-hash *.bin --export results.pdf --signing-key ./keys/hx_signing.key

import argparse
import json
import os
import sys
import time

from hx import __version__ as _hx_version
from hx.audit.logger import AuditLogger, AuditLoggerError
from hx.audit.signing import ArtifactSigner, SigningError, generate_signing_keypair
from hx.core.algorithms import AlgorithmId
from hx.core.compare import ComparisonEngine
from hx.core.errors import IoFailure, UnsupportedAlgorithm
from hx.core.orchestrator import BatchHasher, MultiAlgorithmOrchestrator, ProgressEvent
from hx.core.settings import EXPORT_FORMATS, ConfigurationError, HashSettings
from hx.core.source import DEFAULT_CHUNK_SIZE, FileByteSource
from hx.core.validation import format_bytes, format_eta, parse_size, validate_hex_digest
from hx.report.report_engine import ReportEngine

DEFAULT_ALGORITHMS = ["md5", "sha256"]


def _chunk_size(text: str) -> int:
    try:
        return parse_size(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="hx-hash",
        description="HashXtract (HX): streaming MD5 / SHA / HMAC file hashing.",
    )
    p.add_argument("files", nargs="*", help="Files to hash")

    p.add_argument("-a", "--algo", action="append", dest="algorithms",
                   help="Algorithm (repeatable): " + ", ".join(a.value for a in AlgorithmId)
                        + f" (default: {' '.join(DEFAULT_ALGORITHMS)})")
    p.add_argument("--chunk-size", type=_chunk_size, default=DEFAULT_CHUNK_SIZE,
                   help="Bytes per read, accepts K/M/G suffixes (default: 512K)")
    p.add_argument("--uppercase", action="store_true", help="Print digests in uppercase hex")
    p.add_argument("--hmac-key", default="", help="Key for HMAC algorithms (default: empty)")
    p.add_argument("--one-shot", action="store_true",
                   help="Buffer SHA input and digest once at the end (legacy, O(n) memory)")
    p.add_argument("--keep-going", action="store_true",
                   help="Continue with the next file when one cannot be read")

    # Comparison
    p.add_argument("--compare", action="store_true",
                   help="Group files by digest (automatic when more than one file is given)")
    p.add_argument("--match", metavar="DIGEST", help="Look up a digest among the results")

    # Export
    p.add_argument("--export", metavar="PATH", help="Write results to PATH")
    p.add_argument("--export-format", choices=EXPORT_FORMATS,
                   help="Export format (default: from PATH extension, else txt)")
    p.add_argument("--no-timestamp", action="store_true", help="Omit generation time from exports")

    # Audit
    p.add_argument("--audit-dir", help="Write a hash-chained audit trail into this directory")
    p.add_argument("--label", default="HASHRUN", help="Audit trail label (default: HASHRUN)")
    p.add_argument("--operator", default="UNASSIGNED", help="Operator name recorded in the audit trail")

    # Signing
    p.add_argument("--signing-key", metavar="KEY",
                   help="Ed25519 private key: signs the export and the sealed audit trail")
    p.add_argument("--generate-key", metavar="DIR",
                   help="Create hx_signing.key / hx_signing.pub in DIR (files become optional)")

    # Output
    p.add_argument("--quiet", action="store_true", help="No progress bar")
    p.add_argument("--json", dest="json_output", action="store_true",
                   help="Machine-readable JSON output (implies --quiet)")
    p.add_argument("--version", action="version", version=f"hx-hash {_hx_version}")

    args = p.parse_args(argv)
    if not args.files and not args.generate_key:
        p.error("the following arguments are required: files")
    return args


def cli_progress(name: str, event: ProgressEvent, elapsed: float) -> None:
    """Print hashing progress to terminal."""
    pct = event.percentage
    bar_len = 30
    filled = int(bar_len * pct / 100)
    bar = "█" * filled + "░" * (bar_len - filled)

    mb_per_sec = (event.processed_bytes / (1024 * 1024)) / elapsed if elapsed > 0 else 0.0
    eta = format_eta(event.processed_bytes, event.total_bytes, elapsed)
    line = (
        f"\r  [{bar}] {pct:3d}% | {format_bytes(event.processed_bytes)} / "
        f"{format_bytes(event.total_bytes)} | {mb_per_sec:.1f} MB/s | ETA: {eta} | {name}"
    )
    sys.stdout.write(line)
    if event.done:
        sys.stdout.write("\n")
    sys.stdout.flush()


def _export_format(args) -> str:
    if args.export_format:
        return args.export_format
    ext = os.path.splitext(args.export or "")[1].lstrip(".").lower()
    return ext if ext in EXPORT_FORMATS else "txt"


def _print_reports(reports) -> None:
    for report in reports:
        print(f"\n  {report.name}  ({format_bytes(report.size_bytes)}, {report.duration_ms} ms)")
        for alg, digest in report.digests.items():
            print(f"    {alg.label:<12}: {digest}")


def _print_comparison(comparison) -> None:
    print("\n" + "=" * 60)
    print("  COMPARISON")
    print("=" * 60)
    for alg, group in comparison.items():
        if group.all_identical:
            print(f"  {alg.label:<12}: ✅ all {group.member_count} files identical")
            continue
        print(f"  {alg.label:<12}: {len(group.groups)} distinct digest(s)")
        for digest, names in group.groups.items():
            tag = "same content" if len(names) > 1 else "unique"
            print(f"    {digest} [{tag}]")
            for n in names:
                print(f"      - {n}")


def _closest_digest(candidate: str, reports):
    """Same-length digest sharing the longest prefix with *candidate*."""
    best = None
    for report in reports:
        for alg, digest in report.digests.items():
            if len(digest) != len(candidate.strip()):
                continue
            diff = ComparisonEngine.first_difference(candidate.strip(), digest)
            if diff is not None and (best is None or diff > best[0]):
                best = (diff, report.name, alg, digest)
    return best


def _generate_key(directory: str) -> int:
    try:
        priv_path, pub_path = generate_signing_keypair(directory)
    except SigningError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    print(f"  Private key : {priv_path}")
    print(f"  Public key  : {pub_path}")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.json_output:
        args.quiet = True

    if args.generate_key:
        rc = _generate_key(args.generate_key)
        if rc or not args.files:
            return rc

    if args.export:
        args.export_format = _export_format(args)
    elif args.export_format is None:
        args.export_format = "txt"

    try:
        settings = HashSettings.from_args(args)
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.match is not None:
        ok, err = validate_hex_digest(args.match)
        if not ok:
            print(f"ERROR: --match: {err}", file=sys.stderr)
            return 1

    for path in args.files:
        if not os.path.isfile(path):
            print(f"ERROR: File not found: {path}", file=sys.stderr)
            return 1

    hasher = settings.build_hasher()
    orchestrator = MultiAlgorithmOrchestrator(
        hasher=hasher,
        chunk_size=settings.chunk_size,
        result_format=settings.result_format,
    )
    try:
        algorithms = orchestrator.resolve_algorithms(args.algorithms or DEFAULT_ALGORITHMS)
    except UnsupportedAlgorithm as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    signer = None
    if args.signing_key:
        try:
            signer = ArtifactSigner(args.signing_key)
        except SigningError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        if not args.export and not args.audit_dir:
            print("WARNING: --signing-key given without --export or --audit-dir; nothing to sign.",
                  file=sys.stderr)

    # ── Audit trail ──────────────────────────────────────────────────
    logger = None
    if args.audit_dir:
        try:
            logger = AuditLogger(os.path.abspath(args.audit_dir), args.label, args.operator)
        except AuditLoggerError as e:
            print(f"ERROR: Audit trail initialization failed: {e}", file=sys.stderr)
            return 1
        orchestrator.logger = logger
        logger.log(
            f"hx-hash {_hx_version}: {len(args.files)} file(s) | "
            f"Algorithms: {', '.join(a.value for a in algorithms)} | "
            f"Chunk: {settings.chunk_size} | Delegation: {settings.delegation_mode.value}",
            "INFO", "RUN_PARAMS", source_module="cli",
        )

    # ── Hash ─────────────────────────────────────────────────────────
    names = {}
    started = {}

    def _input_started(index: int, source) -> None:
        started[index] = time.monotonic()

    def _progress(index: int, event: ProgressEvent) -> None:
        if not args.quiet:
            cli_progress(names[index], event, time.monotonic() - started[index])

    sources = []
    for index, path in enumerate(args.files):
        source = FileByteSource(path)
        names[index] = source.name
        sources.append(source)

    batch_hasher = BatchHasher(orchestrator, continue_on_error=args.keep_going)
    try:
        batch = batch_hasher.run(sources, algorithms, on_progress=_progress, on_start=_input_started)
    except IoFailure as e:
        print(f"\n  HASHING FAILED: {e}\n", file=sys.stderr)
        if logger:
            try:
                logger.seal(signer=signer)
            except AuditLoggerError as seal_error:
                print(f"ERROR: {seal_error}", file=sys.stderr)
        return 1

    reports = batch.reports
    for name, err in batch.errors.items():
        print(f"  WARNING: {name} skipped: {err}", file=sys.stderr)

    engine = ComparisonEngine()
    comparison = None
    if args.compare or len(reports) > 1:
        comparison = engine.group_all(reports)

    matches = None
    if args.match is not None:
        matches = engine.match(args.match, reports)
        if logger:
            logger.log(
                f"Digest lookup {args.match.strip()}: {len(matches)} match(es).",
                "INFO", "DIGEST_MATCH", source_module="cli",
                hash_context={"matches": [[m.report_name, m.algorithm.value, m.digest] for m in matches]},
            )

    # ── Output ───────────────────────────────────────────────────────
    if args.json_output:
        payload = {
            "reports": [r.to_dict() for r in reports],
            "errors": batch.errors,
        }
        if comparison is not None:
            payload["comparison"] = {
                alg.value: {"all_identical": g.all_identical, "groups": g.groups}
                for alg, g in comparison.items()
            }
        if matches is not None:
            payload["matches"] = [
                {"name": m.report_name, "algorithm": m.algorithm.value, "digest": m.digest}
                for m in matches
            ]
        print(json.dumps(payload, indent=2))
    else:
        _print_reports(reports)
        if comparison is not None:
            _print_comparison(comparison)
        if matches is not None:
            print()
            if matches:
                print("  ✅ MATCH FOUND")
                for m in matches:
                    print(f"    {m.report_name} [{m.algorithm.label}]")
            else:
                print("  ❌ NO MATCH: digest does not match any computed result.")
                closest = _closest_digest(args.match, reports)
                if closest:
                    pos, name, alg, digest = closest
                    print(f"    Closest: {name} [{alg.label}] differs from position {pos}")
                    print(f"      given   : {args.match.strip().lower()}")
                    print(f"      computed: {digest.lower()}")
                    print(f"                {' ' * pos}^")

    # ── Export ───────────────────────────────────────────────────────
    if args.export:
        try:
            fmt = ReportEngine.write_report(
                reports, args.export, settings.export_format,
                include_timestamp=not args.no_timestamp, comparison=comparison,
            )
        except (OSError, ValueError) as e:
            print(f"ERROR: Export failed: {e}", file=sys.stderr)
            return 1
        if not args.json_output:
            print(f"\n  Exported {len(reports)} result(s) as {fmt.upper()}: {args.export}")
        if logger:
            logger.log(f"Results exported to {args.export} ({fmt}).", "INFO", "EXPORT", source_module="cli")

        if signer is not None:
            try:
                export_sig = signer.sign(args.export)
            except SigningError as e:
                print(f"ERROR: Export signing failed: {e}", file=sys.stderr)
                return 1
            if not args.json_output:
                print(f"  Export signature: {export_sig}")
            if logger:
                logger.log(
                    f"Export signed by key {signer.fingerprint}: {export_sig}",
                    "INFO", "EXPORT_SIGNED", source_module="cli",
                )

    if logger:
        try:
            audit_hash, sig_path = logger.seal(signer=signer)
        except AuditLoggerError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        if not args.json_output:
            print(f"\n  Audit trail : {logger.log_file_path}")
            print(f"  Audit SHA256: {audit_hash}")
            if sig_path:
                print(f"  Signature   : {sig_path}")

    if matches is not None and not matches:
        return 2
    if batch.errors or any(r.failed_algorithms for r in reports):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
