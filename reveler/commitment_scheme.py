#!/usr/bin/env python3
"""
commitment_scheme.py - Commit / verify protocol

COMMITMENT STRUCTURE:
- Public parameters: matrices A, B in Z_q^{N x N} (keygen.generate_params)
- Secrets: message vector m and blinding vector r in Z_q^N
- Commit:
    ca_i = A[i] * m,  cb_i = B[i] * r      (cyclic convolution, per row)
    C    = sum_i (ca_i + cb_i) mod q       (length-N accumulator, row order)
    H    = BlueHash(encode(C))
    commitment = {C, H}
- Verify: recompute BlueHash(encode(C)) and compare with H in constant time.
- Open: recompute commit(A, B, m, r) and compare with the commitment.

The commitment point stays a length-N vector; it is never collapsed to a
scalar. Every function here is pure: inputs are validated into read-only
copies and nothing is cached between calls.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import base64
import binascii
import hmac
import logging
import os

import numpy as np

from .bluehash import hash_to_commitment, encode_commitment_point
from .errors import ConfigurationError
from .fft import ConvolutionEngine, Spectrum, get_engine
from .keygen import generate_params, generate_vector
from .params import (
    LOCAL_N, LOCAL_Q, DEFAULT_DIGEST_SIZE, DEFAULT_TRANSFORM,
    CommitmentParams, DigestSize, as_residue_matrix, as_residue_vector,
)

logger = logging.getLogger(__name__)


# ============================================================================
# COMMITMENT
# ============================================================================

@dataclass(frozen=True, eq=False)
class Commitment:
    """
    The only artifact exchanged: commitment point C and its digest H(C).

    Fields are stored as given so a commitment rebuilt from untrusted data
    can still be passed to verify(), which rejects malformed values.
    """
    commitment_point: Any
    commitment_hash: bytes

    def __eq__(self, other) -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return (np.array_equal(np.asarray(self.commitment_point), np.asarray(other.commitment_point))
                and bytes(self.commitment_hash) == bytes(other.commitment_hash))

    __hash__ = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as base64 strings (point as u64 big-endian words)."""
        point = np.asarray(self.commitment_point).astype(">u8").tobytes()
        return {
            "N": int(np.asarray(self.commitment_point).shape[0]),
            "commitment_point": base64.b64encode(point).decode(),
            "commitment_hash": base64.b64encode(bytes(self.commitment_hash)).decode(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Commitment":
        """
        Rebuild a commitment from to_dict() output.

        Only the structure is checked here; residue ranges and the digest are
        checked by verify().

        Raises:
            ConfigurationError: missing keys, bad base64, or a point whose
                byte length does not match N.
        """
        try:
            point_bytes = base64.b64decode(data["commitment_point"], validate=True)
            digest = base64.b64decode(data["commitment_hash"], validate=True)
            n = int(data["N"])
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise ConfigurationError(f"Malformed commitment: {e}") from e
        if len(point_bytes) != 8 * n:
            raise ConfigurationError(f"Commitment point has {len(point_bytes)} bytes, expected {8 * n}")
        point = np.frombuffer(point_bytes, dtype=">u8")
        # values >= 2^63 wrap negative and fail the range check in verify()
        return cls(point.astype(np.int64), digest)


# ============================================================================
# COMMIT
# ============================================================================

def optimal_thread_count(N: int = LOCAL_N, cpu_count: Optional[int] = None) -> int:
    """
    Worker-count hint for commit(workers=...).

    Large dimensions get up to two workers per core (capped at 16), smaller
    ones one per core (capped at 8).
    """
    cores = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    if N > 1000:
        return max(1, min(cores * 2, 16))
    return max(1, min(cores, 8))


def _row_contributions(engine: ConvolutionEngine, A: np.ndarray, B: np.ndarray,
                       m_hat: Spectrum, r_hat: Spectrum, start: int, end: int) -> np.ndarray:
    """(A[i] * m + B[i] * r) mod q for rows in [start, end)."""
    block = np.empty((end - start, engine.N), dtype=np.int64)
    for i in range(start, end):
        ca = engine.convolve_spectrum(A[i], m_hat)
        cb = engine.convolve_spectrum(B[i], r_hat)
        block[i - start] = (ca + cb) % engine.q
    return block


def _accumulate(contributions: np.ndarray, q: int) -> np.ndarray:
    """Elementwise sum of row contributions mod q, in fixed row order."""
    acc = np.zeros(contributions.shape[1], dtype=np.int64)
    for row in contributions:
        acc = (acc + row) % q
    acc.flags.writeable = False
    return acc


def commit(A, B, m, r, q: int = LOCAL_Q, N: int = LOCAL_N,
           workers: Optional[int] = None,
           transform: str = DEFAULT_TRANSFORM,
           digest_size: DigestSize = DEFAULT_DIGEST_SIZE) -> Commitment:
    """
    Create commitment {C, H(C)} to secret vectors (m, r).

    Args:
        A, B: public N x N matrices over [0, q)
        m: message vector (N residues)
        r: blinding vector (N residues)
        q, N: protocol parameters
        workers: number of threads for the per-row convolutions
            (None or 1 runs inline); see optimal_thread_count()
        transform: "ntt" (exact) or "float"
        digest_size: BlueHash output width

    Returns:
        Commitment with a read-only length-N commitment point

    Raises:
        ConfigurationError: any length != N, any entry outside [0, q), or an
            unsupported parameter set
    """
    params = CommitmentParams(N=N, q=q, digest_size=digest_size, transform=transform)
    A = as_residue_matrix(A, params.q, params.N, name="A")
    B = as_residue_matrix(B, params.q, params.N, name="B")
    m = as_residue_vector(m, params.q, params.N, name="m")
    r = as_residue_vector(r, params.q, params.N, name="r")
    if workers is not None and (isinstance(workers, bool) or not isinstance(workers, int) or workers < 1):
        raise ConfigurationError(f"workers must be a positive integer, got {workers!r}")

    engine = get_engine(params.q, params.N, params.transform)
    m_hat = engine.forward(m)
    r_hat = engine.forward(r)

    n_workers = min(workers or 1, params.N)
    if n_workers == 1:
        contributions = _row_contributions(engine, A, B, m_hat, r_hat, 0, params.N)
    else:
        chunk = (params.N + n_workers - 1) // n_workers
        bounds = [(s, min(s + chunk, params.N)) for s in range(0, params.N, chunk)]
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            futures = [pool.submit(_row_contributions, engine, A, B, m_hat, r_hat, s, e)
                       for s, e in bounds]
            # collected in submission (row) order, whatever order they finish in
            contributions = np.concatenate([f.result() for f in futures])

    point = _accumulate(contributions, params.q)
    digest = hash_to_commitment(point, params.q, params.N, params.digest_size)
    logger.debug(f"[COMMIT] N={params.N}, Q={params.q}, workers={n_workers}, H={digest.hex()[:16]}...")
    return Commitment(point, digest)


# ============================================================================
# VERIFY / OPEN
# ============================================================================

def verify(commitment: Commitment, q: int = LOCAL_Q, N: int = LOCAL_N,
           digest_size: DigestSize = DEFAULT_DIGEST_SIZE) -> bool:
    """
    Check that commitment.commitment_hash == BlueHash(encode(C)).

    Never raises for a bad commitment: wrong length, out-of-range residues,
    a missing or mistyped digest all return False.
    """
    digest_size = DigestSize(digest_size)
    point = getattr(commitment, "commitment_point", None)
    claimed = getattr(commitment, "commitment_hash", None)
    if not isinstance(claimed, (bytes, bytearray)) or len(claimed) != digest_size.digest_bytes:
        logger.warning("[VERIFY] REJECT - digest missing or wrong width")
        return False
    try:
        expected = hash_to_commitment(point, q, N, digest_size)
    except ConfigurationError as e:
        logger.warning(f"[VERIFY] REJECT - malformed commitment point: {e}")
        return False
    return hmac.compare_digest(expected, bytes(claimed))


def open_commitment(commitment: Commitment, A, B, m, r, q: int = LOCAL_Q, N: int = LOCAL_N,
                    transform: str = DEFAULT_TRANSFORM,
                    digest_size: DigestSize = DEFAULT_DIGEST_SIZE) -> bool:
    """
    Reveal check: True iff `commitment` verifies and equals commit(A, B, m, r).

    A malformed opening (bad shapes or ranges) returns False.
    """
    if not verify(commitment, q, N, digest_size):
        return False
    try:
        expected = commit(A, B, m, r, q=q, N=N, transform=transform, digest_size=digest_size)
    except ConfigurationError as e:
        logger.warning(f"[OPEN] REJECT - malformed opening: {e}")
        return False
    same_point = hmac.compare_digest(encode_commitment_point(expected.commitment_point, q, N),
                                     encode_commitment_point(commitment.commitment_point, q, N))
    same_hash = hmac.compare_digest(expected.commitment_hash, bytes(commitment.commitment_hash))
    return same_point and same_hash


# ============================================================================
# COMMITTER
# ============================================================================

@dataclass
class Committer:
    """
    Holds one commitment's inputs (A, B, m, r) and its parameters.

    Inputs are validated into read-only copies on creation, so later changes
    to the caller's arrays cannot affect commit().
    """
    A: Any
    B: Any
    m: Any
    r: Any
    params: CommitmentParams = field(default_factory=CommitmentParams)

    def __post_init__(self):
        p = self.params
        self.A = as_residue_matrix(self.A, p.q, p.N, name="A")
        self.B = as_residue_matrix(self.B, p.q, p.N, name="B")
        self.m = as_residue_vector(self.m, p.q, p.N, name="m")
        self.r = as_residue_vector(self.r, p.q, p.N, name="r")

    @classmethod
    def random(cls, params: Optional[CommitmentParams] = None, m=None) -> "Committer":
        """Fresh A, B, r (and m unless given) from the secure random source."""
        params = params or CommitmentParams()
        A, B = generate_params(params.q, params.N)
        if m is None:
            m = generate_vector(params.q, params.N)
        r = generate_vector(params.q, params.N)
        return cls(A, B, m, r, params)

    def commit(self, workers: Optional[int] = None) -> Commitment:
        p = self.params
        return commit(self.A, self.B, self.m, self.r, q=p.q, N=p.N, workers=workers,
                      transform=p.transform, digest_size=p.digest_size)

    def open(self, commitment: Commitment) -> bool:
        p = self.params
        return open_commitment(commitment, self.A, self.B, self.m, self.r, q=p.q, N=p.N,
                               transform=p.transform, digest_size=p.digest_size)
