"""
reveler - FFT-accelerated commitments with the BlueHash digest

This package contains:
- params: protocol constants (N, Q), CommitmentParams, residue validation
- keygen: secure sampling of public matrices A, B and secret vectors
- fft: cyclic convolution mod Q (exact NTT or bounded float FFT)
- bluehash: 3-round BlueHash digest and commitment point encoding
- commitment_scheme: commit / verify / open
"""

from .errors import CommitError, ConfigurationError, RandomnessError
from .params import LOCAL_N, LOCAL_Q, HASH_ROUNDS, CommitmentParams, DigestSize
from .keygen import generate_params, generate_vector
from .fft import convolve, convolve_direct
from .bluehash import BlueHash, bluehash, hash_to_commitment, encode_commitment_point
from .commitment_scheme import (
    Commitment, Committer, commit, verify, open_commitment, optimal_thread_count,
)

__version__ = "1.0.0"

__all__ = [
    'CommitError',
    'ConfigurationError',
    'RandomnessError',
    'LOCAL_N',
    'LOCAL_Q',
    'HASH_ROUNDS',
    'CommitmentParams',
    'DigestSize',
    'generate_params',
    'generate_vector',
    'convolve',
    'convolve_direct',
    'BlueHash',
    'bluehash',
    'hash_to_commitment',
    'encode_commitment_point',
    'Commitment',
    'Committer',
    'commit',
    'verify',
    'open_commitment',
    'optimal_thread_count',
]
