"""
Ports (interfaces) for the scheduler's collaborators.
"""

from typing import MutableSequence, Protocol


class RandomSource(Protocol):
    """
    Anything that can shuffle a list in place with a uniform permutation.

    `random.Random` satisfies this; tests pass `random.Random(seed)`.
    """

    def shuffle(self, x: MutableSequence) -> None: ...
