# Author: Futhark1393
# Description: Closed algorithm set and the registry that maps each
# identifier to its implementation kind (custom, delegated, keyed).

import hashlib
from dataclasses import dataclass
from enum import Enum

from hx.core.errors import UnsupportedAlgorithm


class AlgorithmId(Enum):
    MD5 = "md5"
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"
    HMAC_MD5 = "hmac-md5"
    HMAC_SHA1 = "hmac-sha1"
    HMAC_SHA256 = "hmac-sha256"

    @property
    def is_keyed(self) -> bool:
        return self.value.startswith("hmac-")

    @property
    def base(self) -> "AlgorithmId":
        """Underlying digest for HMAC variants; the algorithm itself otherwise."""
        if self.is_keyed:
            return AlgorithmId(self.value[len("hmac-"):])
        return self

    @property
    def label(self) -> str:
        return self.value.upper()

    @classmethod
    def parse(cls, text) -> "AlgorithmId":
        """Accept 'sha256', 'SHA-256', 'hmac-sha256', 'HMAC_SHA256', ..."""
        if isinstance(text, cls):
            return text
        raw = str(text).strip().lower().replace("_", "-")
        if raw.startswith("hmac"):
            normalized = "hmac-" + raw[4:].lstrip("-").replace("-", "")
        else:
            normalized = raw.replace("-", "")
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedAlgorithm(text) from None


class AlgorithmKind(Enum):
    CUSTOM = "custom"        # implemented bit-level in hx.core.md5
    DELEGATED = "delegated"  # platform primitive (hashlib)
    KEYED = "keyed"          # HMAC over a base algorithm


class DelegationMode(Enum):
    """How delegated algorithms consume chunks.

    INCREMENTAL feeds every chunk into a hashlib context (O(1) memory).
    ONE_SHOT buffers the whole message and digests it once at finalize,
    which is O(n) memory and only kept for parity with older reports.
    """
    INCREMENTAL = "incremental"
    ONE_SHOT = "one-shot"


@dataclass(frozen=True)
class AlgorithmSpec:
    algorithm: AlgorithmId
    kind: AlgorithmKind
    digest_size: int
    block_size: int
    hashlib_name: str | None = None

    @property
    def hex_length(self) -> int:
        return self.digest_size * 2


_DEFAULT_SPECS = (
    AlgorithmSpec(AlgorithmId.MD5, AlgorithmKind.CUSTOM, 16, 64),
    AlgorithmSpec(AlgorithmId.SHA1, AlgorithmKind.DELEGATED, 20, 64, "sha1"),
    AlgorithmSpec(AlgorithmId.SHA256, AlgorithmKind.DELEGATED, 32, 64, "sha256"),
    AlgorithmSpec(AlgorithmId.SHA512, AlgorithmKind.DELEGATED, 64, 128, "sha512"),
    AlgorithmSpec(AlgorithmId.HMAC_MD5, AlgorithmKind.KEYED, 16, 64),
    AlgorithmSpec(AlgorithmId.HMAC_SHA1, AlgorithmKind.KEYED, 20, 64),
    AlgorithmSpec(AlgorithmId.HMAC_SHA256, AlgorithmKind.KEYED, 32, 64),
)


class AlgorithmRegistry:
    """
    Maps every AlgorithmId to its AlgorithmSpec and records how delegated
    algorithms are driven.

    A registry is an ordinary instance: build one per engine (or share one
    explicitly) rather than relying on module-level state.
    """

    def __init__(self, delegation_mode: DelegationMode = DelegationMode.INCREMENTAL):
        self.delegation_mode = delegation_mode
        self._specs: dict[AlgorithmId, AlgorithmSpec] = {}
        for spec in _DEFAULT_SPECS:
            if spec.hashlib_name and spec.hashlib_name not in hashlib.algorithms_available:
                continue
            self._specs[spec.algorithm] = spec

    def get(self, algorithm) -> AlgorithmSpec:
        algorithm = AlgorithmId.parse(algorithm)
        spec = self._specs.get(algorithm)
        if spec is None:
            raise UnsupportedAlgorithm(algorithm.value)
        if spec.kind is AlgorithmKind.KEYED and algorithm.base not in self._specs:
            raise UnsupportedAlgorithm(algorithm.value)
        return spec

    def resolve(self, algorithm) -> AlgorithmId:
        """Parse and check an identifier; raises UnsupportedAlgorithm."""
        return self.get(algorithm).algorithm

    def is_supported(self, algorithm) -> bool:
        try:
            self.get(algorithm)
        except UnsupportedAlgorithm:
            return False
        return True

    def algorithms(self) -> list[AlgorithmId]:
        return list(self._specs)
