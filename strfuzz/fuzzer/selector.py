"""Weighted random selection of mutation operators."""

from __future__ import annotations

import bisect
import random

from strfuzz.fuzzer.mutators import Mutator, MutatorConfigError


class WeightedSelector:
    """Pick mutators with probability ``weight / total``.

    Thresholds are prefix sums of the weights in list order, computed once.
    A selection is a single draw ``r`` in ``[0, total)`` resolved to the
    first mutator whose threshold exceeds ``r``.
    """

    def __init__(self, mutators: list[Mutator]) -> None:
        if not mutators:
            raise MutatorConfigError("At least one mutator is required")

        running = 0
        for mutator in mutators:
            if mutator.weight <= 0:
                raise MutatorConfigError(
                    f"Share for {mutator.name} must be positive, got {mutator.weight}"
                )
            running += mutator.weight
            mutator.threshold = running

        self.mutators = list(mutators)
        self._thresholds = [m.threshold for m in self.mutators]

    @property
    def total(self) -> int:
        return self._thresholds[-1]

    @property
    def thresholds(self) -> list[int]:
        return list(self._thresholds)

    def index_for(self, draw: int) -> int:
        """Resolve a draw in ``[0, total)`` to a mutator index."""
        if not 0 <= draw < self.total:
            raise ValueError(f"draw {draw} outside [0, {self.total})")
        return bisect.bisect_right(self._thresholds, draw)

    def select(self, rng: random.Random) -> Mutator:
        return self.mutators[self.index_for(rng.randrange(self.total))]

    def probabilities(self) -> dict[str, float]:
        """Selection probability per mutator name (summed over duplicates)."""
        probs: dict[str, float] = {}
        for mutator in self.mutators:
            probs[mutator.name] = probs.get(mutator.name, 0.0) + mutator.weight / self.total
        return probs
