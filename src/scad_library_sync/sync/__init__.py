"""One-way library sync engine.

Mirrors each profile's remote release tree into a local workspace and
tracks what it wrote in a per-profile manifest, so later updates can
tell library files, unchanged files and user files apart.

Modules:

- ``engine``    -- ``Synchronizer`` and the pure ``decide_action`` table.
- ``manifest``  -- ``ManifestStore`` and ``fingerprint``.
- ``models``    -- ``SyncAction``, ``FileResult``, ``ProfileReport``,
  ``SyncOutcome``.
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    import asyncio
    from pathlib import Path
    from scad_library_sync.core.client import RemoteClient
    from scad_library_sync.profiles import ProfileRegistry
    from scad_library_sync.sync import Synchronizer, format_sync_report

    sync = Synchronizer(RemoteClient(), ProfileRegistry.from_config({}))
    outcome = asyncio.run(sync.update(Path("~/scad-libs").expanduser()))
    print(format_sync_report(outcome))
"""

from .engine import Synchronizer, decide_action
from .manifest import ManifestStore, fingerprint
from .models import FileResult, ProfileReport, SyncAction, SyncOutcome
from .reporter import format_sync_report, report_to_json

__all__ = [
    "FileResult",
    "ManifestStore",
    "ProfileReport",
    "SyncAction",
    "SyncOutcome",
    "Synchronizer",
    "decide_action",
    "fingerprint",
    "format_sync_report",
    "report_to_json",
]
