#!/usr/bin/env python3
"""
fft.py - Convolution engine for commitment generation

Computes the cyclic convolution of two length-N residue sequences modulo Q,
i.e. the product of two polynomials of degree < N in Z_q[X]/(X^N - 1).

Two deterministic transform paths:
1. "ntt" (default): number-theoretic transform over two NTT-friendly primes,
   recombined with the CRT. The integer convolution is recovered exactly,
   then reduced mod Q.
2. "float": numpy float64 FFT, accepted only when the round-off bound in
   params.transform_error_bound() stays below 0.5.

Cost is O(N log N) per convolution instead of O(N^2) for the direct
definition (convolve_direct, kept as the reference).
"""

from functools import lru_cache
from typing import Tuple, Union
import logging

import numpy as np
from numba import jit

from .params import (
    LOCAL_N, LOCAL_Q, DEFAULT_TRANSFORM, TRANSFORM_NTT, NTT_PRIMES,
    check_dimensions, check_transform, as_residue_vector,
)

logger = logging.getLogger(__name__)

Spectrum = Union[Tuple[np.ndarray, ...], np.ndarray]


# =====================================
# NTT Core Functions (Number Theoretic Transform)
# =====================================

@jit(nopython=True, nogil=True, cache=True)
def _ntt_butterflies(a: np.ndarray, roots: np.ndarray, p: int) -> None:
    """
    In-place iterative Cooley-Tukey butterflies over Z_p.

    `a` must already be in bit-reversed order; roots[k] = w^k for the
    N-th root of unity w (or its inverse for the inverse transform).
    """
    n = a.shape[0]
    length = 2
    while length <= n:
        half = length >> 1
        step = n // length
        for start in range(0, n, length):
            for k in range(half):
                w = roots[k * step]
                u = a[start + k]
                v = (a[start + k + half] * w) % p
                a[start + k] = (u + v) % p
                a[start + k + half] = (u - v + p) % p
        length <<= 1


def _bit_reverse_permutation(N: int) -> np.ndarray:
    logn = N.bit_length() - 1
    idx = np.arange(N, dtype=np.int64)
    rev = np.zeros(N, dtype=np.int64)
    for bit in range(logn):
        rev |= ((idx >> bit) & 1) << (logn - 1 - bit)
    return rev


def _root_powers(root: int, count: int, p: int) -> np.ndarray:
    powers = [1] * count
    for i in range(1, count):
        powers[i] = (powers[i - 1] * root) % p
    return np.array(powers, dtype=np.int64)


class _PrimeField:
    """Precomputed NTT tables for one prime p and length N."""

    def __init__(self, p: int, generator: int, N: int):
        self.p = p
        w = pow(generator, (p - 1) // N, p)
        half = max(N // 2, 1)
        self.roots = _root_powers(w, half, p)
        self.roots_inv = _root_powers(pow(w, -1, p), half, p)
        self.n_inv = pow(N, -1, p)

    def forward(self, coeffs: np.ndarray, rev: np.ndarray) -> np.ndarray:
        a = np.ascontiguousarray(coeffs[rev] % self.p)
        _ntt_butterflies(a, self.roots, self.p)
        return a

    def inverse(self, values: np.ndarray, rev: np.ndarray) -> np.ndarray:
        a = np.ascontiguousarray(values[rev])
        _ntt_butterflies(a, self.roots_inv, self.p)
        return (a * self.n_inv) % self.p


# =====================================
# CONVOLUTION ENGINE
# =====================================

class ConvolutionEngine:
    """
    Cyclic convolution mod Q for a fixed (Q, N, transform).

    The engine holds only immutable precomputed tables, so one instance can
    be shared by any number of worker threads.
    """

    def __init__(self, q: int = LOCAL_Q, N: int = LOCAL_N, transform: str = DEFAULT_TRANSFORM):
        check_dimensions(q, N)
        check_transform(q, N, transform)
        self.q = int(q)
        self.N = int(N)
        self.transform = transform
        if transform == TRANSFORM_NTT:
            self._rev = _bit_reverse_permutation(self.N)
            self._fields = [_PrimeField(p, g, self.N) for p, g in NTT_PRIMES]
            p1, p2 = NTT_PRIMES[0][0], NTT_PRIMES[1][0]
            self._p1 = p1
            self._p2 = p2
            self._p1_inv = pow(p1, -1, p2)
        logger.debug(f"[FFT] engine ready: N={self.N}, Q={self.q}, transform={transform}")

    def _check(self, values, name: str) -> np.ndarray:
        return as_residue_vector(values, self.q, self.N, name=name)

    def forward(self, vector) -> Spectrum:
        """Transform a residue vector once so it can be reused across rows."""
        v = self._check(vector, "vector")
        if self.transform == TRANSFORM_NTT:
            return tuple(f.forward(v, self._rev) for f in self._fields)
        return np.fft.rfft(v.astype(np.float64))

    def _crt(self, r1: np.ndarray, r2: np.ndarray) -> np.ndarray:
        """Recombine residues mod p1 and p2 into the unique value in [0, p1*p2)."""
        t = ((r2 - r1 % self._p2) % self._p2 * self._p1_inv) % self._p2
        return r1 + self._p1 * t

    def convolve_spectrum(self, row, spectrum: Spectrum) -> np.ndarray:
        """Convolve `row` with a vector already passed through forward()."""
        a = self._check(row, "row")
        if self.transform == TRANSFORM_NTT:
            residues = []
            for field, vec_hat in zip(self._fields, spectrum):
                row_hat = field.forward(a, self._rev)
                prod = (row_hat * vec_hat) % field.p
                residues.append(field.inverse(prod, self._rev))
            exact = self._crt(residues[0], residues[1])
            result = exact % self.q
        else:
            prod = np.fft.rfft(a.astype(np.float64)) * spectrum
            values = np.fft.irfft(prod, n=self.N)
            result = np.rint(values).astype(np.int64) % self.q
        result.flags.writeable = False
        return result

    def convolve(self, row, vector) -> np.ndarray:
        """Cyclic convolution of `row` and `vector`, reduced mod Q."""
        return self.convolve_spectrum(row, self.forward(vector))


@lru_cache(maxsize=16)
def get_engine(q: int = LOCAL_Q, N: int = LOCAL_N, transform: str = DEFAULT_TRANSFORM) -> ConvolutionEngine:
    """Cached engine per parameter set (tables are immutable)."""
    return ConvolutionEngine(q, N, transform)


def convolve(row, vector, q: int = LOCAL_Q, N: int = LOCAL_N, transform: str = DEFAULT_TRANSFORM) -> np.ndarray:
    """
    Cyclic convolution of two length-N residue sequences modulo Q.

    Args:
        row: N residues in [0, Q)
        vector: N residues in [0, Q)
        q: modulus Q
        N: dimension
        transform: "ntt" (exact) or "float"

    Returns:
        Read-only int64 array of N residues in [0, Q)

    Raises:
        ConfigurationError: length != N, entry outside [0, Q), or a parameter
            set the transform cannot evaluate exactly.
    """
    return get_engine(q, N, transform).convolve(row, vector)


def convolve_direct(row, vector, q: int = LOCAL_Q, N: int = LOCAL_N) -> np.ndarray:
    """O(N^2) cyclic convolution mod Q, independent of any transform."""
    check_dimensions(q, N)
    a = as_residue_vector(row, q, N, name="row")
    b = as_residue_vector(vector, q, N, name="vector")
    out = np.zeros(N, dtype=object)
    for j in range(N):
        out += int(a[j]) * np.roll(b, j).astype(object)
    result = np.array([int(c) % q for c in out], dtype=np.int64)
    result.flags.writeable = False
    return result


__all__ = ["ConvolutionEngine", "get_engine", "convolve", "convolve_direct"]
