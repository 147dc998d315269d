#!/usr/bin/env python3
# Author: Futhark1393
# Description: hx-verify: checks HashXtract artifacts after the fact.
# Audit trails (*.jsonl) get the hash chain replayed and, with --pubkey,
# their detached signature checked. Exported reports (txt/csv/pdf) must be
# signed, so --pubkey is required for them.
#
# Usage:
#   hx-verify HashAudit_LABEL_SESSION.jsonl
#   hx-verify HashAudit_LABEL_SESSION.jsonl --pubkey hx_signing.pub
#   hx-verify results.csv --pubkey hx_signing.pub --json

import argparse
import json
import os
import sys

from hx import __version__ as _hx_version
from hx.audit.signing import SIGNATURE_SUFFIX, verify_artifact
from hx.audit.verify import AuditChainVerifier

KIND_AUDIT_TRAIL = "audit_trail"
KIND_REPORT = "report"


def _print_banner() -> None:
    C1 = "\033[1;36m"
    DIM = "\033[2m"
    C0 = "\033[0m"
    print()
    print(f"  {C1}HashXtract v{_hx_version}{C0}  {DIM}Artifact Verifier{C0}")
    print()


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="hx-verify",
        description="Verify a HashXtract audit trail or a signed hash report.",
    )
    p.add_argument("artifact", help="HashAudit_*.jsonl trail or an exported report")
    p.add_argument("--pubkey", help="Ed25519 public key (.pub); required for reports")
    p.add_argument("--sig", help=f"Signature file (default: <artifact>{SIGNATURE_SUFFIX})")
    p.add_argument("--quiet", action="store_true", help="Only print PASS/FAIL.")
    p.add_argument("--json", dest="json_output", action="store_true",
                   help="Output results as JSON (machine-readable).")
    return p.parse_args(argv)


def artifact_kind(path: str) -> str:
    return KIND_AUDIT_TRAIL if path.lower().endswith(".jsonl") else KIND_REPORT


def plan_checks(args) -> list:
    """Ordered (name, callable) pairs; each callable returns (ok, message)."""
    path = args.artifact
    checks = []
    if artifact_kind(path) == KIND_AUDIT_TRAIL:
        checks.append(("chain", lambda: AuditChainVerifier.verify_chain(path)))
    if args.pubkey:
        checks.append(("signature", lambda: verify_artifact(path, args.pubkey, args.sig)))
    return checks


def _emit(args, result: dict) -> None:
    if args.json_output:
        print(json.dumps(result, indent=2))
    elif args.quiet:
        print(result["overall"])
    elif result["overall"] == "PASS":
        print()
        print(f"  RESULT: PASS. {result['kind'].replace('_', ' ').capitalize()} verified.")


def main(argv=None) -> int:
    args = parse_args(argv)
    path = args.artifact
    result = {
        "artifact": path,
        "kind": artifact_kind(path),
        "checks": {},
        "overall": "FAIL",
    }

    if result["kind"] == KIND_REPORT and not args.pubkey:
        print("ERROR: reports carry no chain; --pubkey is required to verify one.", file=sys.stderr)
        return 1

    verbose = not args.quiet and not args.json_output
    if verbose:
        _print_banner()

    if not os.path.exists(path):
        result["checks"]["exists"] = {"ok": False, "message": f"file not found: {path}"}
        if verbose:
            print(f"  ❌ FAIL: file not found: {path}")
        _emit(args, result)
        return 2

    for name, check in plan_checks(args):
        ok, message = check()
        result["checks"][name] = {"ok": ok, "message": message}
        if verbose:
            print(f"  {'✅' if ok else '❌'} {name.upper():<9} {'PASS' if ok else 'FAIL'}: {message}")
        if not ok:
            _emit(args, result)
            return 2

    result["overall"] = "PASS"
    _emit(args, result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
