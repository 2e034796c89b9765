"""Release gate: probe upstream, skip known versions, dispatch new ones."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from .decision import DecisionResult, Proceed, Skip, decide
from .errors import ReleaseError
from .ledger import ReleaseQuery
from .publisher import Publisher
from .version import Version, VersionSource, probe

logger = logging.getLogger(__name__)


class BuildExecutor(Protocol):
    """Turns a version into an installable package file."""

    def build(self, version: Version) -> Path:
        """Build the package and return its path."""
        ...


class ReleaseState(Enum):
    """States of a single gate run."""

    PROBING = 'probing'
    DECIDING = 'deciding'
    SKIPPED = 'skipped'
    DISPATCHED = 'dispatched'
    FAILED = 'failed'


@dataclass(frozen=True)
class ReleaseOutcome:
    """Terminal report of one run."""

    state: ReleaseState
    version: Version | None = None
    decision: DecisionResult | None = None
    artifact: Path | None = None
    error: ReleaseError | None = None

    @property
    def exit_code(self) -> int:
        """Process exit status: non-zero only for failures."""
        return 1 if self.state is ReleaseState.FAILED else 0

    @property
    def status_line(self) -> str:
        """One line summary: probed version, decision and outcome."""
        parts = [f'version={self.version or "unknown"}']
        if self.decision is not None:
            parts.append(f'decision={self.decision.label}')
        if isinstance(self.decision, Skip):
            parts.append(f'reason={self.decision.reason}')

        if self.state is ReleaseState.FAILED and self.error is not None:
            parts.append(f'outcome=failed ({self.error.kind}: {self.error})')
        elif self.state is ReleaseState.DISPATCHED and self.artifact is not None:
            parts.append(f'outcome=published {self.artifact.name}')
        else:
            parts.append(f'outcome={self.state.value}')
        return ' '.join(parts)

    def as_dict(self) -> dict[str, str | int | None]:
        """JSON-friendly representation."""
        return {
            'state': self.state.value,
            'version': str(self.version) if self.version else None,
            'decision': self.decision.label if self.decision else None,
            'artifact': str(self.artifact) if self.artifact else None,
            'error': f'{self.error.kind}: {self.error}' if self.error else None,
            'exit_code': self.exit_code,
        }


class ReleaseGate:
    """Run probe -> decide -> build -> publish for one upstream check."""

    def __init__(
        self,
        source: VersionSource,
        query: ReleaseQuery,
        builder: BuildExecutor | None = None,
        publishers: Sequence[Publisher] = (),
    ) -> None:
        """Initialize the gate.

        Args:
            source: Where the latest upstream version is read from
            query: Where already published versions are listed from
            builder: Package builder; without one the gate only reports its decision
            publishers: Publishers run in order after a successful build

        """
        self.source = source
        self.query = query
        self.builder = builder
        self.publishers = list(publishers)

    def _fail(
        self,
        error: ReleaseError,
        version: Version | None = None,
        decision: DecisionResult | None = None,
    ) -> ReleaseOutcome:
        logger.error('%s: %s', error.kind, error)
        return ReleaseOutcome(ReleaseState.FAILED, version=version, decision=decision, error=error)

    def run(self, *, dry_run: bool = False) -> ReleaseOutcome:
        """Run the gate once.

        Args:
            dry_run: Stop after the decision even when a builder is configured

        Returns:
            The terminal outcome; failures are reported, never raised

        """
        logger.debug('State: %s', ReleaseState.PROBING.value)
        try:
            version = probe(self.source)
        except ReleaseError as e:
            return self._fail(e)

        logger.debug('State: %s', ReleaseState.DECIDING.value)
        try:
            existing = self.query.list_published_versions()
        except ReleaseError as e:
            return self._fail(e, version=version)

        decision = decide(version, existing)
        if isinstance(decision, Skip):
            logger.info('Version %s is already released, skipping', version)
            return ReleaseOutcome(ReleaseState.SKIPPED, version=version, decision=decision)

        logger.info('Version %s is new', version)
        if dry_run or self.builder is None:
            return ReleaseOutcome(ReleaseState.DISPATCHED, version=version, decision=decision)

        return self.dispatch(decision)

    def dispatch(self, decision: Proceed) -> ReleaseOutcome:
        """Build the version and hand the artifact to every publisher."""
        version = decision.version
        if self.builder is None:
            msg = 'No builder configured'
            raise RuntimeError(msg)

        try:
            artifact = self.builder.build(version)
            for publisher in self.publishers:
                logger.info('Publishing %s with %s', artifact.name, type(publisher).__name__)
                publisher.publish(artifact, version)
        except ReleaseError as e:
            return self._fail(e, version=version, decision=decision)

        return ReleaseOutcome(ReleaseState.DISPATCHED, version=version, decision=decision, artifact=artifact)
