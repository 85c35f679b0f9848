"""Exception hierarchy for specsync.

All exceptions inherit from :class:`SpecsyncError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specsync.exit_codes`.
The top-level error handler in :func:`specsync.app.main` catches
``SpecsyncError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Two families live here:

* **Fatal errors** abort a whole scan before the catalogue is touched.
* **Unit errors** (:class:`UnitError` and subclasses) are raised by source
  handlers and the fetcher, caught at the unit boundary by
  :class:`~specsync.scanner.ScanOrchestrator`, and recorded in the report.
  Each carries an :class:`~specsync.models.ErrorKind` so the report never
  needs to inspect message text.

Subclass hierarchy::

    SpecsyncError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- MissingCredentialError  (exit 3)
    +-- RegistryLockedError     (exit 4)
    +-- RegistryCorruptError    (exit 7)
    +-- ConfigError             (exit 1)
    +-- UnitError               (exit 1)
        +-- NoReleaseError
        +-- NotFoundError
        +-- HttpStatusError
        +-- NetworkError
        +-- MaterializeError
"""

from __future__ import annotations

from typing import Optional

from specsync.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_MISSING_CREDENTIAL,
    EXIT_REGISTRY_CORRUPT,
    EXIT_REGISTRY_LOCKED,
)
from specsync.models import ErrorKind


class SpecsyncError(Exception):
    """Base exception for all specsync errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecsyncError):
    """Raised for invalid CLI arguments or references to unknown entries."""

    exit_code = EXIT_INVALID_USAGE


class MissingCredentialError(SpecsyncError):
    """Raised when the host token is required but absent or empty."""

    exit_code = EXIT_MISSING_CREDENTIAL


class RegistryLockedError(SpecsyncError):
    """Raised when the catalogue lock cannot be acquired in time."""

    exit_code = EXIT_REGISTRY_LOCKED


class RegistryCorruptError(SpecsyncError):
    """Raised when the catalogue does not parse against the expected shape."""

    exit_code = EXIT_REGISTRY_CORRUPT


class ConfigError(SpecsyncError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


# --- Per-unit errors ---


class UnitError(SpecsyncError):
    """Base class for failures scoped to a single spec unit.

    Never aborts a scan; the orchestrator records it and moves on.
    """

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NoReleaseError(UnitError):
    """The repository has no published, non-draft, non-prerelease release."""

    kind = ErrorKind.NO_RELEASE


class NotFoundError(UnitError):
    """The upstream resource (release, asset, file, extracted component) is missing."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, status: Optional[int] = 404):
        super().__init__(message, status)


class HttpStatusError(UnitError):
    """The upstream host answered with a non-success HTTP status."""

    kind = ErrorKind.HTTP


class NetworkError(UnitError):
    """Transport-level failure: timeout, DNS resolution, connection refused."""

    kind = ErrorKind.NETWORK


class MaterializeError(UnitError):
    """Writing fetched content to the local output tree failed."""

    kind = ErrorKind.IO
