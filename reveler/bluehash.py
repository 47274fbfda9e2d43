#!/usr/bin/env python3
"""
bluehash.py - BlueHash digest engine

BlueHash maps an arbitrary-length message to a fixed-width digest through
exactly HASH_ROUNDS = 3 sequential mixing rounds:

    state_0 = IV(digest_size)
    chunk_1 || chunk_2 || chunk_3 = pad(message)
    state_r = mix_round(state_{r-1}, chunk_r, ROUND_CONSTANTS[r-1])
    digest  = LE32(state_3)[:digest_bytes]

Structure:
- State: 16 x 32-bit words as a 4x4 uint32 matrix. Rows 1-2 are the rate
  (a 32-byte block is XORed into them), rows 0 and 3 are capacity.
- Compression: F(s, block, rc) = P(s ^ block, rc) + (s ^ block), word-wise
  mod 2^32. The feed-forward makes F non-invertible even though P is a
  permutation.
- Permutation P: DOUBLE_ROUNDS ChaCha-style double rounds (column then
  diagonal quarter-rounds). Before each double round the round constant is
  XORed into row 0 and the step counter into the last word.
- IV: first 32 bits of the fractional parts of sqrt(p) for the first 16
  primes; digest width and round count folded into row 3.
- Round constants: first 12 words of the SHA-256 K table, 4 per round.

All functions are pure; nothing here holds mutable module state.
"""

from typing import List

import numpy as np

from .params import (
    LOCAL_N, LOCAL_Q, HASH_ROUNDS, DEFAULT_DIGEST_SIZE, DigestSize,
    as_residue_vector,
)

# =============================
# CONSTANTS
# =============================
BLOCK_SIZE = 32             # bytes absorbed per compression call
DOUBLE_ROUNDS = 4

_IV_WORDS = (
    0x6A09E667, 0xBB67AE85, 0x3C6EF372, 0xA54FF53A,
    0x510E527F, 0x9B05688C, 0x1F83D9AB, 0x5BE0CD19,
    0xCBBB9D5D, 0x629A292A, 0x9159015A, 0x152FECD8,
    0x67332667, 0x8EB44A87, 0xDB0C2E0D, 0x47B5481D,
)

ROUND_CONSTANTS = tuple(
    np.array(words, dtype=np.uint32)
    for words in (
        (0x428A2F98, 0x71374491, 0xB5C0FBCF, 0xE9B5DBA5),
        (0x3956C25B, 0x59F111F1, 0x923F82A4, 0xAB1C5ED5),
        (0xD807AA98, 0x12835B01, 0x243185BE, 0x550C7DC3),
    )
)

assert len(ROUND_CONSTANTS) == HASH_ROUNDS


# =============================
# PERMUTATION
# =============================
def _rotl(x: np.ndarray, n: int) -> np.ndarray:
    return (x << np.uint32(n)) | (x >> np.uint32(32 - n))


def _quarter_round(a: np.ndarray, b: np.ndarray, c: np.ndarray, d: np.ndarray):
    """ChaCha quarter-round applied to four lanes at once."""
    a = a + b
    d = _rotl(d ^ a, 16)
    c = c + d
    b = _rotl(b ^ c, 12)
    a = a + b
    d = _rotl(d ^ a, 8)
    c = c + d
    b = _rotl(b ^ c, 7)
    return a, b, c, d


def _double_round(x: np.ndarray) -> np.ndarray:
    # columns
    a, b, c, d = _quarter_round(x[0], x[1], x[2], x[3])
    # diagonals: rotate rows so each diagonal lines up in one column
    a, b, c, d = _quarter_round(a, np.roll(b, -1), np.roll(c, -2), np.roll(d, -3))
    return np.stack([a, np.roll(b, 1), np.roll(c, 2), np.roll(d, 3)])


def permute(state: np.ndarray, round_constant: np.ndarray) -> np.ndarray:
    """ARX permutation P of the 4x4 state, keyed by a 4-word round constant."""
    x = state.copy()
    for step in range(DOUBLE_ROUNDS):
        x[0] ^= round_constant
        x[3, 3] ^= np.uint32(step)
        x = _double_round(x)
    return x


def compress(state: np.ndarray, block: bytes, round_constant: np.ndarray) -> np.ndarray:
    """Absorb one BLOCK_SIZE block: F(s) = P(s ^ block) + (s ^ block)."""
    if len(block) != BLOCK_SIZE:
        raise ValueError(f"BlueHash block must be {BLOCK_SIZE} bytes, got {len(block)}")
    s = state.copy()
    s[1:3] ^= np.frombuffer(block, dtype="<u4").astype(np.uint32).reshape(2, 4)
    return permute(s, round_constant) + s


# =============================
# ROUNDS
# =============================
def initial_state(digest_size: DigestSize = DEFAULT_DIGEST_SIZE) -> np.ndarray:
    """IV for a given output width (different widths never share a state)."""
    state = np.array(_IV_WORDS, dtype=np.uint32).reshape(4, 4)
    state[3, 2] ^= np.uint32(int(digest_size))
    state[3, 3] ^= np.uint32(HASH_ROUNDS)
    return state


def pad(data: bytes) -> bytes:
    """
    data || 0x80 || 0x00* || bit length (u64 big-endian), extended to a
    multiple of HASH_ROUNDS * BLOCK_SIZE so every round gets whole blocks.
    """
    unit = HASH_ROUNDS * BLOCK_SIZE
    bit_length = (len(data) * 8) & 0xFFFFFFFFFFFFFFFF
    zeros = (-(len(data) + 1 + 8)) % unit
    return bytes(data) + b"\x80" + b"\x00" * zeros + bit_length.to_bytes(8, "big")


def split_rounds(padded: bytes) -> List[bytes]:
    """Split a padded message into HASH_ROUNDS equal contiguous chunks."""
    size = len(padded) // HASH_ROUNDS
    return [padded[i * size:(i + 1) * size] for i in range(HASH_ROUNDS)]


def mix_round(state: np.ndarray, chunk: bytes, round_constant: np.ndarray) -> np.ndarray:
    """
    One BlueHash round: fold every block of `chunk` into `state`.

    Pure: returns a new state, `state` is left untouched.
    """
    if not chunk or len(chunk) % BLOCK_SIZE:
        raise ValueError(f"Round chunk must be a non-empty multiple of {BLOCK_SIZE} bytes")
    for offset in range(0, len(chunk), BLOCK_SIZE):
        state = compress(state, chunk[offset:offset + BLOCK_SIZE], round_constant)
    return state


def bluehash(data: bytes, digest_size: DigestSize = DEFAULT_DIGEST_SIZE) -> bytes:
    """
    Hash `data` to a digest of `digest_size` bits.

    Args:
        data: message bytes (any length)
        digest_size: one of DigestSize (default 256 bits)

    Returns:
        digest_size // 8 bytes
    """
    digest_size = DigestSize(digest_size)
    state = initial_state(digest_size)
    for chunk, rc in zip(split_rounds(pad(data)), ROUND_CONSTANTS):
        state = mix_round(state, chunk, rc)
    return state.astype("<u4").tobytes()[:digest_size.digest_bytes]


class BlueHash:
    """
    hashlib-style wrapper around bluehash().

    Rounds split the padded message into thirds, so input is buffered and
    the digest is computed over everything seen so far.
    """

    def __init__(self, digest_size: DigestSize = DEFAULT_DIGEST_SIZE, data: bytes = b""):
        self.digest_size = DigestSize(digest_size)
        self._buffer = bytearray(data)

    @property
    def name(self) -> str:
        return f"bluehash{int(self.digest_size)}"

    def update(self, data: bytes) -> None:
        self._buffer.extend(data)

    def copy(self) -> "BlueHash":
        return BlueHash(self.digest_size, bytes(self._buffer))

    def digest(self) -> bytes:
        return bluehash(bytes(self._buffer), self.digest_size)

    def hexdigest(self) -> str:
        return self.digest().hex()


# =============================
# COMMITMENT POINT ENCODING
# =============================
def encode_commitment_point(C, q: int = LOCAL_Q, N: int = LOCAL_N) -> bytes:
    """
    Canonical byte layout of a commitment point: every residue as an
    unsigned 64-bit big-endian word, index order, no separators.
    """
    point = as_residue_vector(C, q, N, name="commitment point")
    return point.astype(">u8").tobytes()


def hash_to_commitment(C, q: int = LOCAL_Q, N: int = LOCAL_N,
                       digest_size: DigestSize = DEFAULT_DIGEST_SIZE) -> bytes:
    """BlueHash of the canonical encoding of C."""
    return bluehash(encode_commitment_point(C, q, N), digest_size)

