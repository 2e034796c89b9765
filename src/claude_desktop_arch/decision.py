"""The release gate's single branch point."""

from collections.abc import Iterable
from dataclasses import dataclass

from .ledger import is_released
from .version import Version

ALREADY_RELEASED = 'already-released'


@dataclass(frozen=True)
class Skip:
    """Nothing to do for this run."""

    reason: str

    @property
    def label(self) -> str:
        """Short name used in status lines."""
        return 'skip'


@dataclass(frozen=True)
class Proceed:
    """Build and publish this version."""

    version: Version

    @property
    def label(self) -> str:
        """Short name used in status lines."""
        return 'proceed'


DecisionResult = Skip | Proceed


def decide(latest: Version, existing: Iterable[Version]) -> DecisionResult:
    """Decide whether the latest upstream version still needs a release.

    Total and deterministic: an empty ``existing`` always proceeds.
    """
    if is_released(latest, existing):
        return Skip(ALREADY_RELEASED)
    return Proceed(latest)
