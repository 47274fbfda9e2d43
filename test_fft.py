#!/usr/bin/env python3
"""
Test convolution engine correctness (NTT and float paths vs direct O(N^2))
"""
import random

import numpy as np
import pytest

from reveler.errors import ConfigurationError
from reveler.fft import ConvolutionEngine, convolve, convolve_direct, get_engine
from reveler.params import LOCAL_N, LOCAL_Q, transform_error_bound

TRANSFORMS = ["ntt", "float"]


def _random_vector(rnd: random.Random, q: int = LOCAL_Q, N: int = LOCAL_N):
    return [rnd.randrange(0, q) for _ in range(N)]


@pytest.mark.parametrize("transform", TRANSFORMS)
def test_convolve_matches_direct_random(transform):
    """Transform path equals the direct definition on random inputs."""
    rnd = random.Random(2024)
    for _ in range(3):
        a = _random_vector(rnd)
        b = _random_vector(rnd)
        fast = convolve(a, b, transform=transform)
        slow = convolve_direct(a, b)
        assert np.array_equal(fast, slow), f"{transform} convolution doesn't match direct"


@pytest.mark.parametrize("transform", TRANSFORMS)
@pytest.mark.parametrize("case", ["zeros", "max", "alternating", "delta"])
def test_convolve_matches_direct_adversarial(transform, case):
    N, q = LOCAL_N, LOCAL_Q
    if case == "zeros":
        a = b = [0] * N
    elif case == "max":
        a = b = [q - 1] * N
    elif case == "alternating":
        a = [0 if i % 2 else q - 1 for i in range(N)]
        b = [q - 1 if i % 2 else 0 for i in range(N)]
    else:
        a = [1] + [0] * (N - 1)
        b = list(range(N))
    assert np.array_equal(convolve(a, b, transform=transform), convolve_direct(a, b))


def test_all_max_peak_value():
    """All-(Q-1) inputs hit the largest exact coefficient N*(Q-1)^2."""
    N, q = LOCAL_N, LOCAL_Q
    expected = (N * (q - 1) ** 2) % q
    result = convolve([q - 1] * N, [q - 1] * N)
    assert set(int(c) for c in result) == {expected}


def test_small_hand_computed():
    """[1,2,3,4] * [1,2,0,1] mod (X^4 - 1, 17) computed by hand."""
    row = [1, 2, 3, 4]
    vec = [1, 2, 0, 1]
    for transform in TRANSFORMS:
        assert convolve(row, vec, q=17, N=4, transform=transform).tolist() == [11, 7, 11, 11]


def test_shift_is_rotation():
    """Convolving with X^1 rotates the vector by one position."""
    vec = [5, 6, 7, 8, 9, 10, 11, 12]
    shift = [0, 1, 0, 0, 0, 0, 0, 0]
    assert convolve(shift, vec, q=97, N=8).tolist() == [12, 5, 6, 7, 8, 9, 10, 11]


def test_dimension_one():
    assert convolve([3], [5], q=7, N=1).tolist() == [1]


def test_float_path_any_length():
    """Float path accepts a non power-of-two N inside its error bound."""
    rnd = random.Random(7)
    a = _random_vector(rnd, q=1009, N=6)
    b = _random_vector(rnd, q=1009, N=6)
    fast = convolve(a, b, q=1009, N=6, transform="float")
    assert np.array_equal(fast, convolve_direct(a, b, q=1009, N=6))


def test_spectrum_reuse_matches_convolve():
    engine = get_engine()
    rnd = random.Random(99)
    vec = _random_vector(rnd)
    spectrum = engine.forward(vec)
    for _ in range(4):
        row = _random_vector(rnd)
        assert np.array_equal(engine.convolve_spectrum(row, spectrum), engine.convolve(row, vec))


def test_result_is_read_only_and_inputs_untouched():
    rnd = random.Random(5)
    a = np.array(_random_vector(rnd), dtype=np.int64)
    b = np.array(_random_vector(rnd), dtype=np.int64)
    a_before, b_before = a.copy(), b.copy()
    result = convolve(a, b)
    assert not result.flags.writeable
    assert np.array_equal(a, a_before) and np.array_equal(b, b_before)
    assert result.min() >= 0 and result.max() < LOCAL_Q


@pytest.mark.parametrize("row,vec", [
    ([1] * (LOCAL_N - 1), [1] * LOCAL_N),
    ([1] * LOCAL_N, [1] * (LOCAL_N + 1)),
    ([[1] * LOCAL_N], [1] * LOCAL_N),
])
def test_length_mismatch_rejected(row, vec):
    with pytest.raises(ConfigurationError):
        convolve(row, vec)


@pytest.mark.parametrize("bad", [LOCAL_Q, -1, 10 ** 6])
def test_out_of_range_rejected(bad):
    row = [0] * LOCAL_N
    row[3] = bad
    with pytest.raises(ConfigurationError):
        convolve(row, [1] * LOCAL_N)


def test_non_integer_rejected():
    with pytest.raises(ConfigurationError):
        convolve([0.5] * LOCAL_N, [1] * LOCAL_N)


def test_ntt_requires_power_of_two():
    with pytest.raises(ConfigurationError):
        ConvolutionEngine(q=17, N=6, transform="ntt")


def test_unsupported_parameters_rejected():
    """Parameters whose coefficients cannot be rounded exactly are refused."""
    q = 2 ** 31
    assert transform_error_bound(q, 256, "ntt") == float("inf")
    assert transform_error_bound(q, 256, "float") >= 0.5
    for transform in TRANSFORMS:
        with pytest.raises(ConfigurationError):
            ConvolutionEngine(q=q, N=256, transform=transform)
    with pytest.raises(ConfigurationError):
        ConvolutionEngine(transform="wavelet")


def test_default_parameters_within_error_bound():
    assert transform_error_bound(LOCAL_Q, LOCAL_N, "ntt") == 0.0
    assert transform_error_bound(LOCAL_Q, LOCAL_N, "float") < 0.5


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main([__file__, "-v"]))
