# Author: Futhark1393
# Description: Replays the prev_hash/entry_hash chain of an HX audit trail.

import hashlib
import json
import os

from hx.audit.logger import GENESIS_HASH


class AuditChainVerifier:
    @staticmethod
    def verify_chain(filepath: str) -> tuple[bool, str]:
        if not os.path.exists(filepath):
            return False, "File not found."

        expected_prev = GENESIS_HASH
        line_number = 0
        records = 0

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                for line in f:
                    line_number += 1
                    if not line.strip():
                        continue

                    entry = json.loads(line)
                    claimed_hash = entry.pop("entry_hash", None)
                    if not claimed_hash:
                        return False, f"Tampering detected: 'entry_hash' missing at line {line_number}."

                    if entry.get("prev_hash") != expected_prev:
                        return False, (
                            f"Chain broken at line {line_number}. "
                            f"Expected prev: {expected_prev}, found: {entry.get('prev_hash')}"
                        )

                    recomputed = hashlib.sha256(
                        json.dumps(entry, sort_keys=True).encode("utf-8")
                    ).hexdigest()
                    if recomputed != claimed_hash:
                        return False, f"Entry manipulation detected at line {line_number}. Hash mismatch."

                    expected_prev = claimed_hash
                    records += 1
        except (OSError, ValueError) as e:
            return False, f"Verification error at line {line_number}: {e}"

        if records == 0:
            return False, "Audit trail is empty."
        return True, f"Chain verified successfully. {records} records intact."
