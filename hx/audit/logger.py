# Author: Futhark1393
# Description: Hash-chained JSONL audit trail for hashing sessions.
# Features: prev_hash/entry_hash chaining, thread-safe appends, fsync per
#          record, sealing with an optional detached artifact signature.

import hashlib
import json
import os
import re
import sys
import threading
import uuid
from datetime import datetime, timezone

GENESIS_HASH = hashlib.sha256(b"HX_AUDIT_GENESIS_BLOCK").hexdigest()


class AuditLoggerError(Exception):
    pass


class AuditLogger:
    """
    Append-only audit trail written as one JSON object per line.

    Every record carries the hash of the previous record (``prev_hash``)
    and its own hash (``entry_hash``) computed over the sorted JSON of
    the record without ``entry_hash``. AuditChainVerifier replays this.
    """

    def __init__(self, output_dir: str, label: str = "UNASSIGNED", operator: str = "UNASSIGNED"):
        if not os.path.isdir(output_dir):
            raise AuditLoggerError(f"Output directory does not exist: {output_dir}")
        if not os.access(output_dir, os.W_OK):
            raise AuditLoggerError(f"Output directory lacks write permissions: {output_dir}")

        self.session_id = str(uuid.uuid4())
        self.label = self.sanitize(label)
        self.operator = self.sanitize(operator)
        self.output_dir = output_dir
        self.log_file_path = os.path.join(
            output_dir, f"HashAudit_{self.label}_{self.session_id}.jsonl"
        )

        self._lock = threading.Lock()
        self.prev_hash = GENESIS_HASH
        self._is_sealed = False

    @staticmethod
    def sanitize(name: str) -> str:
        clean = re.sub(r"[^a-zA-Z0-9_\-]", "_", str(name).strip())
        return clean if clean else "UNASSIGNED"

    @property
    def is_sealed(self) -> bool:
        return self._is_sealed

    def log(
        self,
        message: str,
        level: str = "INFO",
        event_type: str = "GENERAL",
        source_module: str = "core",
        hash_context: dict | None = None,
    ) -> str:
        with self._lock:
            return self._append_unlocked(message, level, event_type, source_module, hash_context)

    def _append_unlocked(
        self,
        message: str,
        level: str,
        event_type: str,
        source_module: str,
        hash_context: dict | None = None,
    ) -> str:
        if self._is_sealed:
            raise AuditLoggerError(f"Audit trail is sealed. Attempted to append: {message}")

        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        entry = {
            "timestamp": timestamp,
            "session_id": self.session_id,
            "label": self.label,
            "operator": self.operator,
            "event_id": str(uuid.uuid4()),
            "event_type": event_type,
            "severity": level,
            "source_module": source_module,
            "message": message,
        }
        if hash_context:
            entry["hash_context"] = hash_context

        self._write(entry)
        return f"[{timestamp}] [{level}] {message}"

    def _write(self, entry: dict) -> None:
        entry["prev_hash"] = self.prev_hash
        entry_hash = hashlib.sha256(
            json.dumps(entry, sort_keys=True).encode("utf-8")
        ).hexdigest()
        entry["entry_hash"] = entry_hash

        try:
            with open(self.log_file_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, sort_keys=True) + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise AuditLoggerError(f"Audit trail write error: {e}") from e

        self.prev_hash = entry_hash

    def seal(self, signer=None) -> tuple[str, str | None]:
        """
        Close the trail: append a sealing record, hash the file, make it
        read-only and, given an ArtifactSigner, write a detached ``.sig``.

        Returns (final_sha256, signature_path_or_None).
        """
        with self._lock:
            if self._is_sealed:
                raise AuditLoggerError("Audit trail is already sealed.")

            self._append_unlocked(
                "Sealing audit trail.", "INFO", "AUDIT_SEALING", source_module="audit",
                hash_context={"signer": signer.fingerprint} if signer is not None else None,
            )
            self._is_sealed = True

            sha = hashlib.sha256()
            try:
                with open(self.log_file_path, "rb") as f:
                    for chunk in iter(lambda: f.read(65536), b""):
                        sha.update(chunk)
            except OSError as e:
                raise AuditLoggerError(f"Failed to hash audit trail: {e}") from e

            sig_path = None
            if signer is not None:
                from hx.audit.signing import SigningError

                try:
                    sig_path = signer.sign(self.log_file_path)
                except SigningError as e:
                    print(f"WARNING: audit trail signing failed: {e}", file=sys.stderr)

            os.chmod(self.log_file_path, 0o444)
            return sha.hexdigest(), sig_path
