"""
Gray-Code Sequencer

Bit-manipulation helpers indexing the controlled-rotation ladders.
Walking the 2^k control values in Gray-code order changes exactly one
control bit per step, so consecutive rotations share every control line
but one and a ladder needs a single CNOT per step.
"""

from functools import lru_cache
from typing import List, Tuple

import numpy as np

from unitary_synth.errors import ShapeError


def greyencode(i: int) -> int:
    """
    Gray code of ``i``: ``i ^ (i >> 1)``.

    A bijection on [0, 2^k) whose cyclically adjacent outputs differ in
    exactly one bit.
    """
    if i < 0:
        raise ValueError(f"Gray code is defined for non-negative integers, got {i}.")
    return i ^ (i >> 1)


def svalue(n: int) -> List[int]:
    """
    Positions of the set bits of ``n``, ascending (0 = least significant).

    ``sum(1 << p for p in svalue(n)) == n``. Applied to the XOR of two
    consecutive Gray codes it yields the single bit that toggled.
    """
    if n < 0:
        raise ValueError(f"Bit positions are defined for non-negative integers, got {n}.")
    positions = []
    p = 0
    while n:
        if n & 1:
            positions.append(p)
        n >>= 1
        p += 1
    return positions


def num_bits(n_states: int) -> int:
    """Return k for ``n_states == 2**k``; raise ``ShapeError`` otherwise."""
    if n_states < 1 or n_states & (n_states - 1):
        raise ShapeError(f"{n_states} is not a power of two.")
    return n_states.bit_length() - 1


def flip_state(bit_pos: int, n_states: int) -> np.ndarray:
    """
    Toggle pattern of one bit along a Gray-code walk.

    Parameters
    ----------
    bit_pos : int
        1-based bit position counted from the most significant of the
        ``log2(n_states)`` bits.
    n_states : int
        Length of the walk (a power of two).

    Returns
    -------
    ndarray of int, shape (n_states - 1,)
        Entry ``j - 1`` is +1 if the bit turns on between ``g(j-1)`` and
        ``g(j)``, -1 if it turns off, 0 if it is unchanged.

    Examples
    --------
    >>> flip_state(3, 8).tolist()
    [1, 0, -1, 0, 1, 0, -1]
    """
    k = num_bits(n_states)
    if not 1 <= bit_pos <= k:
        raise ValueError(f"bit_pos must lie in [1, {k}], got {bit_pos}.")
    mask = 1 << (k - bit_pos)
    flips = np.zeros(n_states - 1, dtype=int)
    for j in range(1, n_states):
        before = greyencode(j - 1) & mask
        after = greyencode(j) & mask
        if before != after:
            flips[j - 1] = 1 if after else -1
    return flips


@lru_cache(maxsize=None)
def control_sequence(n_controls: int) -> Tuple[int, ...]:
    """
    Controls toggled along a full cyclic Gray walk over ``n_controls`` bits.

    Entry ``step`` is the control (0 = most significant) whose bit flips
    between ``g(step)`` and ``g(step + 1)``; the final entry wraps the walk
    back to zero and always names control 0.
    """
    if n_controls < 1:
        raise ValueError(f"A Gray walk needs at least one bit, got {n_controls}.")
    n_states = 1 << n_controls
    patterns = [flip_state(bit_pos, n_states) for bit_pos in range(1, n_controls + 1)]
    sequence = []
    for step in range(n_states - 1):
        toggled = [c for c, flips in enumerate(patterns) if flips[step] != 0]
        sequence.append(toggled[0])
    sequence.append(0)
    return tuple(sequence)


def flipped_control(step: int, n_controls: int) -> int:
    """Control toggled after Gray step ``step``; see ``control_sequence``."""
    sequence = control_sequence(n_controls)
    if not 0 <= step < len(sequence):
        raise ValueError(f"step must lie in [0, {len(sequence)}), got {step}.")
    return sequence[step]
