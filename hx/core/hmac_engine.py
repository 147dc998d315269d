# Author: Futhark1393
# Description: HMAC (RFC 2104) over any non-keyed algorithm of the registry.
# The inner digest is streamed, so keyed hashing needs no whole-message buffer.

from hx.core.algorithms import AlgorithmId, AlgorithmKind
from hx.core.errors import UnsupportedAlgorithm
from hx.core.hashing import HashAccumulator

_IPAD = 0x36
_OPAD = 0x5C


def normalize_key(key) -> bytes:
    """None -> b'', str -> UTF-8 bytes, bytes-like -> bytes."""
    if key is None:
        return b""
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


class HmacAccumulator(HashAccumulator):
    """H((K' ^ opad) || H((K' ^ ipad) || message))"""

    def __init__(self, algorithm, base: AlgorithmId, padded_key: bytes, hasher):
        super().__init__(algorithm)
        self.base = base
        self._hasher = hasher
        self._outer_key = bytes(b ^ _OPAD for b in padded_key)
        self._inner = hasher.init(base)
        hasher.update(self._inner, bytes(b ^ _IPAD for b in padded_key))

    def _update(self, data) -> None:
        self._hasher.update(self._inner, data)

    def _finalize(self) -> bytes:
        inner_digest = self._hasher.finalize(self._inner)
        outer = self._hasher.init(self.base)
        self._hasher.update(outer, self._outer_key)
        self._hasher.update(outer, inner_digest)
        return self._hasher.finalize(outer)


class HmacEngine:
    """
    Builds keyed accumulators on top of a StreamingHasher.

    The base algorithm's accumulators come from the same hasher, so
    HMAC-MD5 runs on the from-scratch MD5 and the SHA variants follow the
    registry's delegation mode.
    """

    def __init__(self, hasher):
        self.hasher = hasher

    def prepare_key(self, base: AlgorithmId, key) -> bytes:
        """Hash keys longer than the block size, then zero-pad to it."""
        spec = self.hasher.registry.get(base)
        key = normalize_key(key)
        if len(key) > spec.block_size:
            key = self.hasher.digest(base, key)
        return key.ljust(spec.block_size, b"\x00")

    def new(self, base, key=None, algorithm=None) -> HmacAccumulator:
        base = AlgorithmId.parse(base)
        if self.hasher.registry.get(base).kind is AlgorithmKind.KEYED:
            raise UnsupportedAlgorithm(f"hmac over {base.value}")
        return HmacAccumulator(
            algorithm or base,
            base,
            self.prepare_key(base, key),
            self.hasher,
        )

    def compute(self, base, key, message: bytes) -> bytes:
        acc = self.new(base, key)
        acc.update(message)
        return acc.finalize()
