"""
Tests for the release gate state machine.

Verifies that:
- New versions are built and handed to every publisher
- Known versions are skipped without building
- Probe and ledger failures abort before any build or publish
- Build and publish failures are reported verbatim
- A second run after a successful publish is skipped
"""
from __future__ import annotations

from claude_desktop_arch.decision import Proceed, Skip
from claude_desktop_arch.errors import BuildFailed, InvalidVersion, PublishFailed, SourceUnavailable
from claude_desktop_arch.release import ReleaseGate, ReleaseState
from claude_desktop_arch.version import Version

from conftest import FakeBuilder, FakeLedger, FakePublisher, FakeSource

NUPKG = 'AnthropicClaude-0.13.11-full.nupkg'
VERSION = Version(0, 13, 11)


# ---------------------------------------------------------------------------
# Decision-only runs
# ---------------------------------------------------------------------------

def test_new_version_proceeds(ledger):
    outcome = ReleaseGate(FakeSource(NUPKG), ledger).run()

    assert outcome.state is ReleaseState.DISPATCHED
    assert outcome.decision == Proceed(VERSION)
    assert outcome.exit_code == 0
    assert outcome.artifact is None


def test_released_version_skips():
    outcome = ReleaseGate(FakeSource(NUPKG), FakeLedger({VERSION})).run()

    assert outcome.state is ReleaseState.SKIPPED
    assert isinstance(outcome.decision, Skip)
    assert outcome.exit_code == 0
    assert 'decision=skip' in outcome.status_line


def test_invalid_version_fails(ledger, builder):
    publisher = FakePublisher()
    gate = ReleaseGate(FakeSource('AnthropicClaude-badversion.nupkg'), ledger, builder, [publisher])

    outcome = gate.run()

    assert outcome.state is ReleaseState.FAILED
    assert isinstance(outcome.error, InvalidVersion)
    assert outcome.exit_code != 0
    assert builder.built == []
    assert publisher.published == []


def test_source_unavailable_fails_without_publish(ledger, builder):
    publisher = FakePublisher()
    gate = ReleaseGate(FakeSource(fail=True), ledger, builder, [publisher])

    outcome = gate.run()

    assert outcome.state is ReleaseState.FAILED
    assert isinstance(outcome.error, SourceUnavailable)
    assert outcome.exit_code == 1
    assert outcome.version is None
    assert builder.built == []
    assert publisher.published == []


def test_ledger_failure_is_not_treated_as_empty(builder):
    gate = ReleaseGate(FakeSource(NUPKG), FakeLedger(fail=True), builder)

    outcome = gate.run()

    assert outcome.state is ReleaseState.FAILED
    assert outcome.version == VERSION
    assert builder.built == []


def test_dry_run_does_not_build(ledger, builder):
    outcome = ReleaseGate(FakeSource(NUPKG), ledger, builder).run(dry_run=True)

    assert outcome.state is ReleaseState.DISPATCHED
    assert builder.built == []


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def test_dispatch_builds_and_publishes_in_order(ledger, builder):
    first = FakePublisher()
    second = FakePublisher(ledger)

    outcome = ReleaseGate(FakeSource(NUPKG), ledger, builder, [first, second]).run()

    assert outcome.state is ReleaseState.DISPATCHED
    assert builder.built == [VERSION]
    assert first.published == [(outcome.artifact, VERSION)]
    assert second.published == [(outcome.artifact, VERSION)]
    assert outcome.status_line.endswith(f'outcome=published {outcome.artifact.name}')


def test_build_failure_reported(ledger, tmp_path):
    publisher = FakePublisher()
    gate = ReleaseGate(FakeSource(NUPKG), ledger, FakeBuilder(tmp_path, fail=True), [publisher])

    outcome = gate.run()

    assert outcome.state is ReleaseState.FAILED
    assert isinstance(outcome.error, BuildFailed)
    assert 'BuildFailed: makepkg exited with 1' in outcome.status_line
    assert publisher.published == []


def test_publish_failure_stops_later_publishers(ledger, builder):
    later = FakePublisher()
    gate = ReleaseGate(FakeSource(NUPKG), ledger, builder, [FakePublisher(fail=True), later])

    outcome = gate.run()

    assert outcome.state is ReleaseState.FAILED
    assert isinstance(outcome.error, PublishFailed)
    assert outcome.decision == Proceed(VERSION)
    assert later.published == []


def test_second_run_is_skipped_after_publish(ledger, builder):
    gate = ReleaseGate(FakeSource(NUPKG), ledger, builder, [FakePublisher(ledger)])

    first = gate.run()
    second = gate.run()

    assert first.state is ReleaseState.DISPATCHED
    assert second.state is ReleaseState.SKIPPED
    assert builder.built == [VERSION]


def test_as_dict():
    outcome = ReleaseGate(FakeSource(NUPKG), FakeLedger({VERSION})).run()

    assert outcome.as_dict() == {
        'state': 'skipped',
        'version': '0.13.11',
        'decision': 'skip',
        'artifact': None,
        'error': None,
        'exit_code': 0,
    }
