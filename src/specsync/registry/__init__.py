"""The persistent catalogue of tracked spec sources.

- :class:`RegistryStore` -- validated load and atomic rewrite of the JSON file.
- :class:`CatalogueLock` -- cross-process lock held around every rewrite.
- :func:`with_version` -- copy an entry with new version-tracking state.
"""

from specsync.registry.lock import CatalogueLock
from specsync.registry.store import RegistryStore, dump_entry, find_entry, with_version

__all__ = [
    "CatalogueLock",
    "RegistryStore",
    "dump_entry",
    "find_entry",
    "with_version",
]
