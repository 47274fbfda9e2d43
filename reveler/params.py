#!/usr/bin/env python3
"""
params.py - Protocol constants and input validation

Every entity of one commitment (matrices A, B, secret vectors m, r and the
commitment point C) shares the same dimension N and modulus Q. The defaults
below are the protocol instance used when callers do not pass their own.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any
import math

import numpy as np

from .errors import ConfigurationError

# =============================
# CONSTANTS & PARAMETERS
# =============================
LOCAL_N = 256           # dimension: rows, vector length, commitment point length
LOCAL_Q = 65535         # modulus (u16::MAX), residues live in [0, Q)
HASH_ROUNDS = 3         # BlueHash mixing rounds, fixed protocol parameter

TRANSFORM_NTT = "ntt"       # exact number-theoretic transform + CRT
TRANSFORM_FLOAT = "float"   # float64 FFT, only inside the proven error bound
TRANSFORMS = (TRANSFORM_NTT, TRANSFORM_FLOAT)
DEFAULT_TRANSFORM = TRANSFORM_NTT

# NTT-friendly primes p = c * 2^k + 1 with a primitive root g.
# Both are < 2^31 so a product of two residues fits in int64.
NTT_PRIMES = (
    (2013265921, 31),   # 15 * 2^27 + 1
    (469762049, 3),     # 7 * 2^26 + 1
)
NTT_MAX_LOG_N = 26
NTT_MODULUS = NTT_PRIMES[0][0] * NTT_PRIMES[1][0]

FLOAT_EPSILON = 2.0 ** -52
MAX_ROUNDING_ERROR = 0.5


class DigestSize(IntEnum):
    """Supported BlueHash output widths, in bits."""
    BIT128 = 128
    BIT224 = 224
    BIT256 = 256
    BIT384 = 384
    BIT512 = 512

    @property
    def digest_bytes(self) -> int:
        return self.value // 8


DEFAULT_DIGEST_SIZE = DigestSize.BIT256


# =============================
# PARAMETER CHECKS
# =============================
def check_dimensions(q: int, N: int) -> None:
    """Reject a (Q, N) pair that cannot describe a protocol instance."""
    if isinstance(N, bool) or not isinstance(N, (int, np.integer)) or N < 1:
        raise ConfigurationError(f"N must be a positive integer, got {N!r}")
    if isinstance(q, bool) or not isinstance(q, (int, np.integer)) or q < 2:
        raise ConfigurationError(f"Q must be an integer >= 2, got {q!r}")
    if q > 2 ** 63:
        raise ConfigurationError(f"Q={q} does not fit a signed 64-bit residue")


def transform_error_bound(q: int, N: int, transform: str = DEFAULT_TRANSFORM) -> float:
    """
    A-priori bound on the absolute error of one convolution coefficient
    before rounding to the nearest integer.

    - ntt: 0.0 when the exact integer convolution (at most N*(Q-1)^2) is
      representable modulo p1*p2 and N is a power of two the primes support,
      otherwise inf.
    - float: N*(Q-1)^2 * eps * (3*log2(N) + 4), the standard forward/inverse
      FFT round-off bound with eps = 2^-52.
    """
    q, N = int(q), int(N)
    peak = N * (q - 1) ** 2
    if transform == TRANSFORM_NTT:
        if N & (N - 1) or N.bit_length() - 1 > NTT_MAX_LOG_N:
            return math.inf
        return 0.0 if peak < NTT_MODULUS else math.inf
    if transform == TRANSFORM_FLOAT:
        return float(peak) * FLOAT_EPSILON * (3 * math.log2(N) + 4)
    raise ConfigurationError(f"Unknown transform {transform!r}, expected one of {TRANSFORMS}")


def check_transform(q: int, N: int, transform: str = DEFAULT_TRANSFORM) -> None:
    """Raise unless `transform` rounds every coefficient unambiguously."""
    if transform not in TRANSFORMS:
        raise ConfigurationError(f"Unknown transform {transform!r}, expected one of {TRANSFORMS}")
    q, N = int(q), int(N)
    if transform == TRANSFORM_NTT:
        if N & (N - 1):
            raise ConfigurationError(f"NTT transform needs N to be a power of two, got N={N}")
        if N.bit_length() - 1 > NTT_MAX_LOG_N:
            raise ConfigurationError(f"NTT transform supports N <= 2^{NTT_MAX_LOG_N}, got N={N}")
    bound = transform_error_bound(q, N, transform)
    if not bound < MAX_ROUNDING_ERROR:
        raise ConfigurationError(
            f"{transform} transform cannot convolve exactly for N={N}, Q={q} "
            f"(error bound {bound} >= {MAX_ROUNDING_ERROR})"
        )


@dataclass(frozen=True)
class CommitmentParams:
    """Shared parameters of one protocol instance, validated on creation."""
    N: int = LOCAL_N
    q: int = LOCAL_Q
    digest_size: DigestSize = DEFAULT_DIGEST_SIZE
    transform: str = DEFAULT_TRANSFORM

    def __post_init__(self):
        check_dimensions(self.q, self.N)
        check_transform(self.q, self.N, self.transform)
        try:
            object.__setattr__(self, "digest_size", DigestSize(self.digest_size))
        except ValueError:
            raise ConfigurationError(f"Unsupported digest size {self.digest_size!r}") from None


# =============================
# RESIDUE VALIDATION
# =============================
def _freeze(arr: np.ndarray) -> np.ndarray:
    out = arr.astype(np.int64, copy=True)
    out.flags.writeable = False
    return out


def _check_range(arr: np.ndarray, q: int, name: str) -> None:
    if arr.dtype.kind not in "iu":
        raise ConfigurationError(f"{name} must hold integers, got dtype {arr.dtype}")
    if arr.size and (arr.min() < 0 or arr.max() >= q):
        raise ConfigurationError(f"{name} has entries outside [0, {q})")


def as_residue_vector(values: Any, q: int = LOCAL_Q, N: int = LOCAL_N, name: str = "vector") -> np.ndarray:
    """
    Validate a length-N residue sequence and return a read-only int64 copy.

    Raises:
        ConfigurationError: wrong length, non-integer entries or an entry
            outside [0, Q).
    """
    try:
        arr = np.asarray(values)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"{name} is not a residue sequence: {e}") from e
    if arr.ndim != 1 or arr.shape[0] != N:
        raise ConfigurationError(f"{name} length {arr.shape} != N={N}")
    _check_range(arr, q, name)
    return _freeze(arr)


def as_residue_matrix(values: Any, q: int = LOCAL_Q, N: int = LOCAL_N, name: str = "matrix") -> np.ndarray:
    """Validate an N x N residue matrix and return a read-only int64 copy."""
    try:
        arr = np.asarray(values)
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"{name} is not a residue matrix: {e}") from e
    if arr.shape != (N, N):
        raise ConfigurationError(f"{name} shape {arr.shape} != ({N}, {N})")
    _check_range(arr, q, name)
    return _freeze(arr)
