"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specsync.exceptions.SpecsyncError` subclass.
Schedulers and CI wrappers inspect the exit code to decide whether a scan
failed as a whole, without parsing stderr.

Example::

    $ specsync scan
    $ echo $?
    7   # EXIT_REGISTRY_CORRUPT -- the catalogue file could not be parsed
"""

EXIT_SUCCESS = 0
"""The command completed successfully (a scan with per-unit errors still succeeds)."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or unknown names."""

EXIT_MISSING_CREDENTIAL = 3
"""The upstream host token is absent or empty but the scan needs it."""

EXIT_REGISTRY_LOCKED = 4
"""Another scan held the catalogue lock for longer than the lock timeout."""

EXIT_REGISTRY_CORRUPT = 7
"""The catalogue file could not be parsed against the expected shape."""

EXIT_UNIT_ERRORS = 8
"""The scan finished but recorded per-unit errors and ``--strict`` was given."""
