# Author: Futhark1393
# Description: From-scratch MD5 (RFC 1321). Streaming state with O(1) memory:
# full 64-byte blocks are compressed as soon as they arrive and only the
# trailing partial block is kept between updates.

import struct

MASK32 = 0xFFFFFFFF
MASK64 = 0xFFFFFFFFFFFFFFFF
BLOCK_SIZE = 64
DIGEST_SIZE = 16

# Initial chaining value (A, B, C, D)
MD5_IV = (0x67452301, 0xEFCDAB89, 0x98BADCFE, 0x10325476)

# T[1..64] = floor(2^32 * abs(sin(i)))
_K = (
    0xD76AA478, 0xE8C7B756, 0x242070DB, 0xC1BDCEEE,
    0xF57C0FAF, 0x4787C62A, 0xA8304613, 0xFD469501,
    0x698098D8, 0x8B44F7AF, 0xFFFF5BB1, 0x895CD7BE,
    0x6B901122, 0xFD987193, 0xA679438E, 0x49B40821,
    0xF61E2562, 0xC040B340, 0x265E5A51, 0xE9B6C7AA,
    0xD62F105D, 0x02441453, 0xD8A1E681, 0xE7D3FBC8,
    0x21E1CDE6, 0xC33707D6, 0xF4D50D87, 0x455A14ED,
    0xA9E3E905, 0xFCEFA3F8, 0x676F02D9, 0x8D2A4C8A,
    0xFFFA3942, 0x8771F681, 0x6D9D6122, 0xFDE5380C,
    0xA4BEEA44, 0x4BDECFA9, 0xF6BB4B60, 0xBEBFBC70,
    0x289B7EC6, 0xEAA127FA, 0xD4EF3085, 0x04881D05,
    0xD9D4D039, 0xE6DB99E5, 0x1FA27CF8, 0xC4AC5665,
    0xF4292244, 0x432AFF97, 0xAB9423A7, 0xFC93A039,
    0x655B59C3, 0x8F0CCC92, 0xFFEFF47D, 0x85845DD1,
    0x6FA87E4F, 0xFE2CE6E0, 0xA3014314, 0x4E0811A1,
    0xF7537E82, 0xBD3AF235, 0x2AD7D2BB, 0xEB86D391,
)

# Per-operation left-rotation amounts
_S = (
    [7, 12, 17, 22] * 4
    + [5, 9, 14, 20] * 4
    + [4, 11, 16, 23] * 4
    + [6, 10, 15, 21] * 4
)

# Message word index used by operation i
_G = (
    [i for i in range(16)]
    + [(5 * i + 1) % 16 for i in range(16, 32)]
    + [(3 * i + 5) % 16 for i in range(32, 48)]
    + [(7 * i) % 16 for i in range(48, 64)]
)


def rotl32(x: int, n: int) -> int:
    x &= MASK32
    return ((x << n) | (x >> (32 - n))) & MASK32


def md5_compress(state: tuple[int, int, int, int], block) -> tuple[int, int, int, int]:
    """Run the 64 MD5 operations over one 64-byte block and fold into *state*."""
    m = struct.unpack("<16I", block)
    a, b, c, d = state

    for i in range(64):
        if i < 16:
            f = (b & c) | (~b & d)
        elif i < 32:
            f = (b & d) | (c & ~d)
        elif i < 48:
            f = b ^ c ^ d
        else:
            f = c ^ (b | ~d)
        f = (a + (f & MASK32) + m[_G[i]] + _K[i]) & MASK32
        a, d, c = d, c, b
        b = (b + rotl32(f, _S[i])) & MASK32

    return (
        (state[0] + a) & MASK32,
        (state[1] + b) & MASK32,
        (state[2] + c) & MASK32,
        (state[3] + d) & MASK32,
    )


def md5_padding(bit_count: int, buffered: int) -> bytes:
    """0x80, zeros up to 56 mod 64, then the 64-bit little-endian bit count."""
    pad = b"\x80" + b"\x00" * ((55 - buffered) % BLOCK_SIZE)
    return pad + struct.pack("<Q", bit_count & MASK64)


class Md5State:
    """
    Mutable MD5 accumulator.

    Holds the four chaining words, the total number of message bits seen
    so far and at most 63 bytes of not-yet-compressed input.
    """

    __slots__ = ("words", "bit_count", "_pending")

    def __init__(self):
        self.words = MD5_IV
        self.bit_count = 0
        self._pending = b""

    @property
    def pending(self) -> bytes:
        return self._pending

    def update(self, data) -> None:
        view = memoryview(data).cast("B")
        self.bit_count = (self.bit_count + len(view) * 8) & MASK64
        offset = 0

        if self._pending:
            need = BLOCK_SIZE - len(self._pending)
            head = self._pending + bytes(view[:need])
            if len(head) < BLOCK_SIZE:
                self._pending = head
                return
            self.words = md5_compress(self.words, head)
            offset = need

        words = self.words
        end = offset + (len(view) - offset) // BLOCK_SIZE * BLOCK_SIZE
        for pos in range(offset, end, BLOCK_SIZE):
            words = md5_compress(words, view[pos:pos + BLOCK_SIZE])
        self.words = words
        self._pending = bytes(view[end:])

    def digest(self) -> bytes:
        """Pad and return the 16-byte digest. The state itself is left untouched."""
        tail = self._pending + md5_padding(self.bit_count, len(self._pending))
        words = self.words
        for pos in range(0, len(tail), BLOCK_SIZE):
            words = md5_compress(words, tail[pos:pos + BLOCK_SIZE])
        return struct.pack("<4I", *words)


def md5_digest(data: bytes) -> bytes:
    state = Md5State()
    state.update(data)
    return state.digest()


def md5_hex(data: bytes) -> str:
    return md5_digest(data).hex()
