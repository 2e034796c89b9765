"""Error types raised across the release pipeline."""


class ReleaseError(RuntimeError):
    """Base class for every failure that aborts a release run."""

    kind = 'ReleaseError'


class InvalidVersion(ReleaseError):  # noqa: N818
    """No well-formed version triple could be extracted."""

    kind = 'InvalidVersion'


class SourceUnavailable(ReleaseError):  # noqa: N818
    """A version source or release query could not be reached."""

    kind = 'SourceUnavailable'


class BuildFailed(ReleaseError):  # noqa: N818
    """The packaging toolchain failed."""

    kind = 'BuildFailed'


class PublishFailed(ReleaseError):  # noqa: N818
    """Uploading or pushing the package failed."""

    kind = 'PublishFailed'
