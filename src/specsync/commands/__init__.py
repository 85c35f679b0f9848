"""Built-in CLI sub-commands for specsync.

* :mod:`~specsync.commands.scan` -- run a scan pass.
* :mod:`~specsync.commands.registry` -- list, show, validate and hand-edit
  catalogue entries.
* :mod:`~specsync.commands.config` -- view and modify global settings.

Group modules export a :class:`typer.Typer` sub-application; single
commands export a plain callback registered directly on the root app.
"""
