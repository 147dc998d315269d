# Author: Futhark1393
# Description: Incremental stream hasher. One accumulator per algorithm,
# fed chunk by chunk and finalized exactly once.

import hashlib

from hx.core.algorithms import (
    AlgorithmId,
    AlgorithmKind,
    AlgorithmRegistry,
    DelegationMode,
)
from hx.core.errors import AlreadyFinalized
from hx.core.md5 import Md5State

RESULT_FORMATS = ("lowercase", "uppercase")


class HashAccumulator:
    """Mutable per-algorithm state. Subclasses implement _update/_finalize."""

    def __init__(self, algorithm: AlgorithmId):
        self.algorithm = algorithm
        self.bytes_seen = 0
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def update(self, data) -> None:
        if self._finalized:
            raise AlreadyFinalized(f"{self.algorithm.value}: update after finalize")
        self._update(data)
        self.bytes_seen += len(data)

    def finalize(self) -> bytes:
        if self._finalized:
            raise AlreadyFinalized(f"{self.algorithm.value}: finalize called twice")
        self._finalized = True
        return self._finalize()

    def _update(self, data) -> None:
        raise NotImplementedError

    def _finalize(self) -> bytes:
        raise NotImplementedError


class Md5Accumulator(HashAccumulator):
    def __init__(self, algorithm: AlgorithmId = AlgorithmId.MD5):
        super().__init__(algorithm)
        self.state = Md5State()

    def _update(self, data) -> None:
        self.state.update(data)

    def _finalize(self) -> bytes:
        return self.state.digest()


class IncrementalAccumulator(HashAccumulator):
    """Delegated algorithm driven through a hashlib context."""

    def __init__(self, algorithm: AlgorithmId, hashlib_name: str):
        super().__init__(algorithm)
        self._ctx = hashlib.new(hashlib_name)

    def _update(self, data) -> None:
        self._ctx.update(data)

    def _finalize(self) -> bytes:
        return self._ctx.digest()


class OneShotAccumulator(HashAccumulator):
    """
    Delegated algorithm driven through the one-shot primitive only.

    Every chunk is appended to an in-memory buffer and the digest is taken
    once over the complete message, so memory grows with the input.
    """

    def __init__(self, algorithm: AlgorithmId, hashlib_name: str):
        super().__init__(algorithm)
        self._hashlib_name = hashlib_name
        self._buffer = bytearray()

    @property
    def buffered_bytes(self) -> int:
        return len(self._buffer)

    def _update(self, data) -> None:
        self._buffer += data

    def _finalize(self) -> bytes:
        digest = hashlib.new(self._hashlib_name, bytes(self._buffer)).digest()
        self._buffer = bytearray()
        return digest


class StreamingHasher:
    """
    init / update / finalize over accumulators for every registered algorithm.

    HMAC algorithms are keyed with *hmac_key* (empty when not supplied).
    """

    def __init__(
        self,
        registry: AlgorithmRegistry | None = None,
        hmac_key: bytes | str | None = None,
    ):
        self.registry = registry or AlgorithmRegistry()
        self.hmac_key = hmac_key

    @property
    def delegation_mode(self) -> DelegationMode:
        return self.registry.delegation_mode

    def init(self, algorithm) -> HashAccumulator:
        spec = self.registry.get(algorithm)

        if spec.kind is AlgorithmKind.CUSTOM:
            return Md5Accumulator(spec.algorithm)

        if spec.kind is AlgorithmKind.DELEGATED:
            if self.registry.delegation_mode is DelegationMode.ONE_SHOT:
                return OneShotAccumulator(spec.algorithm, spec.hashlib_name)
            return IncrementalAccumulator(spec.algorithm, spec.hashlib_name)

        from hx.core.hmac_engine import HmacEngine
        return HmacEngine(self).new(spec.algorithm.base, self.hmac_key, algorithm=spec.algorithm)

    def update(self, accumulator: HashAccumulator, chunk) -> None:
        accumulator.update(chunk)

    def finalize(self, accumulator: HashAccumulator) -> bytes:
        return accumulator.finalize()

    def digest(self, algorithm, data: bytes) -> bytes:
        """Convenience: whole-message digest through a fresh accumulator."""
        acc = self.init(algorithm)
        acc.update(data)
        return acc.finalize()

    @staticmethod
    def hexdigest(raw: bytes, result_format: str = "lowercase") -> str:
        if result_format not in RESULT_FORMATS:
            raise ValueError(f"Unknown result format: {result_format!r}")
        hex_str = raw.hex()
        return hex_str.upper() if result_format == "uppercase" else hex_str
