"""Poseidon hash over the BN254 scalar field.

This is the hash the hidden-parameter circuit uses for its commitment, so
the value computed here must equal the one the circuit computes.

Parameters follow circomlib: x^5 S-box, 8 full rounds, partial rounds per
state width from the Poseidon paper, state ``[0, *inputs]`` and output
``state[0]``. Round constants and the Cauchy MDS matrix are drawn from the
Grain LFSR seeded with the instance parameters, the same way the reference
parameter generator does.
"""

from collections import deque
from functools import lru_cache
from typing import List, Sequence, Tuple

from py_ecc import bn128
from py_ecc.fields import bn128_FQ as FQ


class FR(FQ):
    """Element of the BN254 scalar field."""

    field_modulus = bn128.curve_order


FIELD_BITS = 254
FULL_ROUNDS = 8
# Partial rounds for state width t = 2, 3, 4, ...
PARTIAL_ROUNDS = (56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68)
MAX_INPUTS = len(PARTIAL_ROUNDS)


def _to_bits(value: int, width: int) -> List[int]:
    return [int(b) for b in bin(value)[2:].zfill(width)]


def _grain_stream(t: int, partial_rounds: int):
    """Yield pseudo-random bits from the self-shrinking Grain LFSR."""
    state = deque(
        _to_bits(1, 2)  # prime field
        + _to_bits(0, 4)  # x^alpha S-box
        + _to_bits(FIELD_BITS, 12)
        + _to_bits(t, 12)
        + _to_bits(FULL_ROUNDS, 10)
        + _to_bits(partial_rounds, 10)
        + [1] * 30
    )

    def step() -> int:
        bit = state[62] ^ state[51] ^ state[38] ^ state[23] ^ state[13] ^ state[0]
        state.popleft()
        state.append(bit)
        return bit

    for _ in range(160):
        step()

    while True:
        first = step()
        second = step()
        if first == 1:
            yield second


def _random_int(bits, width: int) -> int:
    value = 0
    for _ in range(width):
        value = (value << 1) | next(bits)
    return value


@lru_cache(maxsize=None)
def _parameters(t: int) -> Tuple[Tuple[FR, ...], Tuple[Tuple[FR, ...], ...]]:
    partial_rounds = PARTIAL_ROUNDS[t - 2]
    bits = _grain_stream(t, partial_rounds)
    modulus = FR.field_modulus

    constants = []
    for _ in range((FULL_ROUNDS + partial_rounds) * t):
        value = _random_int(bits, FIELD_BITS)
        while value >= modulus:
            value = _random_int(bits, FIELD_BITS)
        constants.append(FR(value))

    while True:
        points = [_random_int(bits, FIELD_BITS) % modulus for _ in range(2 * t)]
        if len(set(points)) != len(points):
            continue
        xs, ys = points[:t], points[t:]
        if any((x + y) % modulus == 0 for x in xs for y in ys):
            continue
        break

    mds = tuple(tuple(FR(1) / FR(x + y) for y in ys) for x in xs)
    return tuple(constants), mds


def _sbox(x: FR) -> FR:
    square = x * x
    return square * square * x


def poseidon(inputs: Sequence[int]) -> int:
    """Hash 1 to 16 field elements.

    Inputs are interpreted modulo the scalar field; callers that need strict
    range checks must do them first.

    Raises:
        ValueError: If the number of inputs is unsupported
    """
    if not 1 <= len(inputs) <= MAX_INPUTS:
        raise ValueError(
            f"Poseidon supports 1 to {MAX_INPUTS} inputs, got {len(inputs)}"
        )

    t = len(inputs) + 1
    constants, mds = _parameters(t)
    partial_rounds = PARTIAL_ROUNDS[t - 2]
    half_full = FULL_ROUNDS // 2

    state = [FR(0)] + [FR(int(x)) for x in inputs]
    for r in range(FULL_ROUNDS + partial_rounds):
        state = [s + constants[r * t + i] for i, s in enumerate(state)]
        if r < half_full or r >= half_full + partial_rounds:
            state = [_sbox(s) for s in state]
        else:
            state[0] = _sbox(state[0])
        state = [
            sum((row[j] * state[j] for j in range(t)), FR(0)) for row in mds
        ]

    return int(state[0])
