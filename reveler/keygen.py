#!/usr/bin/env python3
"""
keygen.py - Public parameter and secret vector sampling

generate_params() draws the two public N x N matrices (A, B) used once per
commitment. generate_vector() draws a secret vector (m or r) the same way.

Sampling:
- Bytes come from a cryptographically secure source (secrets.token_bytes
  unless the caller injects another provider with the same signature).
- Each residue is a fixed-width little-endian word masked to
  bit_length(Q - 1) bits; words >= Q are rejected, so the result is exactly
  uniform on [0, Q).
- A and B are drawn with separate calls and share no entropy.

Any failure of the entropy source is fatal (RandomnessError): a commitment
built from weak randomness is insecure, so there is no retry and no
fallback to the `random` module.
"""

from typing import Callable, Tuple
import logging
import secrets

import numpy as np

from .errors import ConfigurationError, RandomnessError
from .params import LOCAL_N, LOCAL_Q, check_dimensions

logger = logging.getLogger(__name__)

EntropySource = Callable[[int], bytes]

_WORD_WIDTHS = (1, 2, 4, 8)


def _word_width(q: int) -> int:
    bits = (q - 1).bit_length()
    for width in _WORD_WIDTHS:
        if bits <= width * 8:
            return width
    raise ConfigurationError(f"Q={q} is too large to sample")


def _draw(entropy: EntropySource, n_bytes: int) -> bytes:
    try:
        buf = entropy(n_bytes)
    except Exception as e:
        raise RandomnessError(f"Entropy source failed: {e}") from e
    if not isinstance(buf, (bytes, bytearray)) or len(buf) != n_bytes:
        raise RandomnessError(f"Entropy source returned {type(buf).__name__} "
                              f"of unexpected length (wanted {n_bytes} bytes)")
    return bytes(buf)


def sample_residues(count: int, q: int = LOCAL_Q, entropy: EntropySource = secrets.token_bytes) -> np.ndarray:
    """
    Uniform residues in [0, q) by rejection sampling.

    Args:
        count: number of residues
        q: modulus
        entropy: callable returning n cryptographically secure random bytes

    Returns:
        int64 array of `count` residues

    Raises:
        RandomnessError: entropy source raised or returned short data
    """
    q = int(q)
    width = _word_width(q)
    mask = (1 << (q - 1).bit_length()) - 1
    out = np.empty(count, dtype=np.int64)
    filled = 0
    while filled < count:
        # acceptance is > 1/2 after masking, so 2x oversampling rarely loops
        want = 2 * (count - filled) + 8
        words = np.frombuffer(_draw(entropy, want * width), dtype=f"<u{width}").astype(np.uint64)
        words &= np.uint64(mask)
        accepted = words[words < np.uint64(q)][:count - filled]
        out[filled:filled + accepted.size] = accepted.astype(np.int64)
        filled += accepted.size
    return out


def generate_vector(q: int = LOCAL_Q, N: int = LOCAL_N, entropy: EntropySource = secrets.token_bytes) -> np.ndarray:
    """Sample one secret vector (m or r): N uniform residues, read-only."""
    check_dimensions(q, N)
    vec = sample_residues(N, q, entropy)
    vec.flags.writeable = False
    return vec


def generate_matrix(q: int = LOCAL_Q, N: int = LOCAL_N, entropy: EntropySource = secrets.token_bytes) -> np.ndarray:
    """Sample one N x N public matrix, read-only."""
    check_dimensions(q, N)
    mat = sample_residues(N * N, q, entropy).reshape(N, N)
    mat.flags.writeable = False
    return mat


def generate_params(q: int = LOCAL_Q, N: int = LOCAL_N,
                    entropy: EntropySource = secrets.token_bytes) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate the public matrices (A, B) for one commitment.

    Returns:
        (A, B): two independent N x N int64 matrices over [0, Q)

    Raises:
        ConfigurationError: invalid (Q, N)
        RandomnessError: entropy source failure
    """
    A = generate_matrix(q, N, entropy)
    B = generate_matrix(q, N, entropy)
    logger.debug(f"[KEYGEN] sampled A, B: {N}x{N} over Z_{q}")
    return A, B
