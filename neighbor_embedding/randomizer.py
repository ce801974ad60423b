"""Seeded random source passed explicitly to the embedding session."""

import numpy as np
from typing import Optional, Tuple, Union


class Randomizer:
    """Deterministic pseudorandom source built on numpy's Generator.

    Every run owns its own instance; nothing touches numpy's global state.
    """

    def __init__(self, seed: Optional[int] = 1212):
        """Initialize the generator.

        Args:
            seed: Integer seed. ``None`` draws fresh entropy from the OS.
        """
        self._seed = seed
        self._rng = np.random.default_rng(seed)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def reseed(self, seed: Optional[int] = None) -> None:
        """Restart the stream, from ``seed`` or from the current seed."""
        if seed is not None:
            self._seed = seed
        self._rng = np.random.default_rng(self._seed)

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self._rng.random())

    def gauss_random(self) -> float:
        """Standard normal variate."""
        return float(self._rng.standard_normal())

    def gauss(self, shape: Union[int, Tuple[int, ...]]) -> np.ndarray:
        """Array of standard normal variates with the given shape."""
        return self._rng.standard_normal(shape)
