"""Found/lost computation between consecutive ticks."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from perceptkit.models.perception import PerceptionResult

ResultKey = tuple[int, int]


def result_key(result: PerceptionResult) -> ResultKey:
    """Identity of a result: its artifact and target objects, not their fields."""
    return (id(result.artifact), id(result.target))


@dataclass(slots=True)
class ResultDelta:
    found: list[PerceptionResult] = field(default_factory=list)
    lost: list[PerceptionResult] = field(default_factory=list)


class ResultDiffer:
    """Remember the previous tick's results and report what changed.

    Keys are object ids.  They stay valid because the stored set keeps every
    referenced artifact and target alive until the next :meth:`diff`.
    """

    def __init__(self) -> None:
        self._previous: dict[ResultKey, PerceptionResult] = {}

    @property
    def current(self) -> list[PerceptionResult]:
        return list(self._previous.values())

    def diff(self, results: Iterable[PerceptionResult]) -> ResultDelta:
        unique: dict[ResultKey, PerceptionResult] = {}
        for result in results:
            unique.setdefault(result_key(result), result)

        found = [result for key, result in unique.items() if key not in self._previous]
        lost = [result for key, result in self._previous.items() if key not in unique]

        # Always replaced, so stale references are released.
        self._previous = unique
        return ResultDelta(found=found, lost=lost)

    def reset(self) -> None:
        self._previous = {}
