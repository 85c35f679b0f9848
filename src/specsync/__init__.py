"""specsync -- keep generated API connectors in step with upstream OpenAPI specs.

specsync maintains a catalogue of connectors, each pointing at the place its
upstream specification is published (a GitHub release, a vendor URL, a
documentation page bundling several APIs, an API hub, ...). A *scan* walks
the catalogue, finds the specs whose upstream version changed since the
last run, downloads them into a local tree and reports what changed.

Typical workflow::

    specsync registry validate       # check the catalogue parses
    specsync scan --dry-run          # see what would be updated
    specsync scan --report scan.json # fetch updates, write UPDATE_SUMMARY.md

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and precedence resolution.
    registry: Catalogue persistence and locking.
    sources: One handler per upstream source type.
    scanner: The scan state machine.
    report: Scan report and change summary artifacts.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
