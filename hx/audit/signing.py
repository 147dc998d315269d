# Author: Futhark1393
# Description: Detached Ed25519 signatures for HX artifacts (exported hash
# reports and sealed audit trails).
# The signed message binds the artifact's file name, size and SHA-256, the
# latter streamed through the HX engine. Signatures are stored as a JSON
# envelope in ``<artifact>.sig``.

import hashlib
import json
import os

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)

from hx.core.algorithms import AlgorithmId
from hx.core.errors import IoFailure
from hx.core.orchestrator import MultiAlgorithmOrchestrator, is_failure
from hx.core.source import FileByteSource

SIGNATURE_SUFFIX = ".sig"
SIGNATURE_SCHEME = "hx-ed25519-sha256-v1"


class SigningError(Exception):
    pass


def key_fingerprint(public_key: Ed25519PublicKey) -> str:
    raw = public_key.public_bytes(Encoding.Raw, PublicFormat.Raw)
    return hashlib.sha256(raw).hexdigest()[:16]


def generate_signing_keypair(output_dir: str, stem: str = "hx_signing") -> tuple[str, str]:
    """
    Write ``<stem>.key`` (PKCS8, mode 600) and ``<stem>.pub`` into *output_dir*.
    Existing keys are never overwritten. Returns (private_path, public_path).
    """
    if not os.path.isdir(output_dir):
        raise SigningError(f"Key directory does not exist: {output_dir}")

    priv_path = os.path.join(output_dir, f"{stem}.key")
    pub_path = os.path.join(output_dir, f"{stem}.pub")
    for p in (priv_path, pub_path):
        if os.path.exists(p):
            raise SigningError(f"Refusing to overwrite existing key: {p}")

    private_key = Ed25519PrivateKey.generate()
    fd = os.open(priv_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()))
    with open(pub_path, "wb") as f:
        f.write(private_key.public_key().public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo))

    return priv_path, pub_path


def artifact_digest(path: str) -> tuple[int, str]:
    """(size_bytes, sha256 hex) of *path*, streamed through the hash engine."""
    try:
        with FileByteSource(path) as source:
            report = MultiAlgorithmOrchestrator().hash_source(source, [AlgorithmId.SHA256])
    except (OSError, IoFailure) as e:
        raise SigningError(f"Cannot hash {path}: {e}") from e

    digest = report.digests[AlgorithmId.SHA256]
    if is_failure(digest):
        raise SigningError(f"Cannot hash {path}: {digest}")
    return report.size_bytes, digest


def _signed_message(artifact: str, size_bytes: int, sha256: str) -> bytes:
    return f"{SIGNATURE_SCHEME}\n{artifact}\n{size_bytes}\n{sha256}\n".encode("utf-8")


def _load_key(path: str, loader, expected: type, what: str):
    try:
        with open(path, "rb") as f:
            data = f.read()
        key = loader(data)
    except (OSError, ValueError, TypeError) as e:
        raise SigningError(f"Cannot load {what} {path}: {e}") from e
    if not isinstance(key, expected):
        raise SigningError(f"{what.capitalize()} {path} is not Ed25519 ({type(key).__name__})")
    return key


class ArtifactSigner:
    """Loads a private key once and signs any number of artifacts with it."""

    def __init__(self, private_key_path: str):
        self._key = _load_key(
            private_key_path,
            lambda data: load_pem_private_key(data, password=None),
            Ed25519PrivateKey,
            "private key",
        )
        self.fingerprint = key_fingerprint(self._key.public_key())

    def sign(self, path: str) -> str:
        """Write ``<path>.sig`` and return its path."""
        size_bytes, sha256 = artifact_digest(path)
        artifact = os.path.basename(path)
        signature = self._key.sign(_signed_message(artifact, size_bytes, sha256))

        envelope = {
            "scheme": SIGNATURE_SCHEME,
            "artifact": artifact,
            "size_bytes": size_bytes,
            "sha256": sha256,
            "signer": self.fingerprint,
            "signature": signature.hex(),
        }
        sig_path = path + SIGNATURE_SUFFIX
        try:
            with open(sig_path, "w", encoding="utf-8") as f:
                json.dump(envelope, f, indent=2, sort_keys=True)
                f.write("\n")
        except OSError as e:
            raise SigningError(f"Cannot write signature {sig_path}: {e}") from e
        return sig_path


def verify_artifact(path: str, public_key_path: str, sig_path: str | None = None) -> tuple[bool, str]:
    """Returns (ok, message). Content, name and signer are all checked."""
    sig_path = sig_path or path + SIGNATURE_SUFFIX
    for label, p in (("Artifact", path), ("Signature file", sig_path), ("Public key", public_key_path)):
        if not os.path.exists(p):
            return False, f"{label} not found: {p}"

    try:
        public_key = _load_key(public_key_path, load_pem_public_key, Ed25519PublicKey, "public key")
        with open(sig_path, "r", encoding="utf-8") as f:
            envelope = json.load(f)
        signature = bytes.fromhex(envelope["signature"])
        claimed = (envelope["artifact"], int(envelope["size_bytes"]), envelope["sha256"])
        scheme, signer = envelope["scheme"], envelope.get("signer")
    except SigningError as e:
        return False, str(e)
    except (OSError, ValueError, KeyError, TypeError) as e:
        return False, f"Malformed signature file: {e}"

    if scheme != SIGNATURE_SCHEME:
        return False, f"Unknown signature scheme: {scheme}"
    if signer != key_fingerprint(public_key):
        return False, f"Signed by a different key ({signer})."
    if claimed[0] != os.path.basename(path):
        return False, f"Signature belongs to {claimed[0]!r}, not {os.path.basename(path)!r}."

    try:
        actual = artifact_digest(path)
    except SigningError as e:
        return False, str(e)
    if actual != claimed[1:]:
        return False, "Artifact content changed since signing (SHA-256 mismatch)."

    try:
        public_key.verify(signature, _signed_message(*claimed))
    except InvalidSignature:
        return False, "Signature does not match the signed digest."

    return True, f"Valid signature by key {signer} over SHA-256 {claimed[2]}."
