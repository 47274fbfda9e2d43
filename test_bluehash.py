#!/usr/bin/env python3
"""
Test BlueHash: output widths, determinism, round structure, avalanche
"""
import random

import numpy as np
import pytest

from reveler.bluehash import (
    BLOCK_SIZE, ROUND_CONSTANTS, BlueHash, bluehash, encode_commitment_point,
    hash_to_commitment, initial_state, mix_round, pad, split_rounds,
)
from reveler.errors import ConfigurationError
from reveler.params import HASH_ROUNDS, DigestSize


def _bit_difference(x: bytes, y: bytes) -> int:
    return sum(bin(a ^ b).count("1") for a, b in zip(x, y))


@pytest.mark.parametrize("size", list(DigestSize))
def test_digest_width(size):
    assert len(bluehash(b"reveler", size)) == size.digest_bytes
    assert len(bluehash(b"", size)) == size.digest_bytes


def test_deterministic():
    msg = b"commit-then-reveal"
    assert bluehash(msg) == bluehash(msg)
    assert bluehash(msg) != bluehash(msg + b"\x00")


def test_widths_are_domain_separated():
    """A short digest is not a prefix of a longer one."""
    msg = b"width"
    assert bluehash(msg, DigestSize.BIT512)[:16] != bluehash(msg, DigestSize.BIT128)
    assert bluehash(msg, DigestSize.BIT256)[:28] != bluehash(msg, DigestSize.BIT224)


def test_padding_layout():
    unit = HASH_ROUNDS * BLOCK_SIZE
    for length in (0, 1, 55, 87, 88, 95, 96, 200, 2048):
        data = bytes(length)
        padded = pad(data)
        assert len(padded) % unit == 0
        assert padded[:length] == data
        assert padded[length] == 0x80
        assert int.from_bytes(padded[-8:], "big") == 8 * length
        chunks = split_rounds(padded)
        assert len(chunks) == HASH_ROUNDS
        assert b"".join(chunks) == padded
        assert len({len(c) for c in chunks}) == 1


def test_mix_round_is_pure():
    state = initial_state()
    before = state.copy()
    chunk = bytes(range(64))
    out1 = mix_round(state, chunk, ROUND_CONSTANTS[0])
    out2 = mix_round(state, chunk, ROUND_CONSTANTS[0])
    assert np.array_equal(state, before)
    assert np.array_equal(out1, out2)
    assert not np.array_equal(out1, state)


def test_round_constants_matter():
    chunk = bytes(BLOCK_SIZE)
    outs = [mix_round(initial_state(), chunk, rc).tobytes() for rc in ROUND_CONSTANTS]
    assert len(set(outs)) == HASH_ROUNDS


def test_mix_round_rejects_partial_blocks():
    with pytest.raises(ValueError):
        mix_round(initial_state(), b"", ROUND_CONSTANTS[0])
    with pytest.raises(ValueError):
        mix_round(initial_state(), bytes(BLOCK_SIZE + 1), ROUND_CONSTANTS[0])


def test_composition_of_three_rounds():
    """bluehash() is exactly the three rounds composed over the padded chunks."""
    msg = b"compose me" * 7
    state = initial_state(DigestSize.BIT256)
    for chunk, rc in zip(split_rounds(pad(msg)), ROUND_CONSTANTS):
        state = mix_round(state, chunk, rc)
    assert state.astype("<u4").tobytes()[:32] == bluehash(msg)


def test_avalanche():
    """Flipping one input bit flips about half of the output bits."""
    rnd = random.Random(1234)
    fractions = []
    for _ in range(64):
        msg = bytearray(rnd.getrandbits(8) for _ in range(64))
        flipped = bytearray(msg)
        bit = rnd.randrange(len(msg) * 8)
        flipped[bit // 8] ^= 1 << (bit % 8)
        diff = _bit_difference(bluehash(bytes(msg)), bluehash(bytes(flipped)))
        fractions.append(diff / 256)
    mean = sum(fractions) / len(fractions)
    print(f"  mean flipped fraction: {mean:.3f}, min {min(fractions):.3f}")
    assert 0.45 < mean < 0.55
    assert min(fractions) > 0.3


def test_hasher_object_matches_one_shot():
    h = BlueHash(DigestSize.BIT384)
    h.update(b"part one, ")
    h.update(b"part two")
    snapshot = h.copy()
    h.update(b"!")
    assert snapshot.digest() == bluehash(b"part one, part two", DigestSize.BIT384)
    assert h.hexdigest() == bluehash(b"part one, part two!", DigestSize.BIT384).hex()
    assert h.name == "bluehash384"


def test_encode_commitment_point_layout():
    encoded = encode_commitment_point([7, 4, 9, 10], q=17, N=4)
    assert encoded == b"".join(v.to_bytes(8, "big") for v in (7, 4, 9, 10))
    assert hash_to_commitment([7, 4, 9, 10], q=17, N=4) == bluehash(encoded)


@pytest.mark.parametrize("point", [[1, 2, 3], [1, 2, 3, 17], [1, 2, 3, -1]])
def test_hash_to_commitment_rejects_bad_points(point):
    with pytest.raises(ConfigurationError):
        hash_to_commitment(point, q=17, N=4)
