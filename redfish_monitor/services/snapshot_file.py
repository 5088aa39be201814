"""Snapshot persistence and a file-backed stand-in for a Redfish client."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from ..config.models import TraverseRule
from .snapshot_cache import Snapshot, freeze_snapshot


DEFAULT_DUMMY_DATA = [
    {
        "path": "/redfish/v1/Systems/System.Embedded.1/Processors/CPU.Socket.1",
        "data": {"Status": {"Health": "OK"}},
    },
    {
        "path": "/redfish/v1/Systems/System.Embedded.1/Processors/CPU.Socket.2",
        "data": {"Status": {"Health": "OK"}},
    },
    {
        "path": "/redfish/v1/Systems/System.Embedded.1/Storage/AHCI.Slot.1-1",
        "data": {"Status": {"Health": "OK"}},
    },
    {
        "path": "/redfish/v1/Systems/System.Embedded.1/Storage/PCIeSSD.Slot.2-C",
        "data": {"Status": {"Health": "OK"}},
    },
    {
        "path": "/redfish/v1/Systems/System.Embedded.1/Storage/PCIeSSD.Slot.3-C",
        "data": {"Status": {"Health": "OK"}},
    },
]


def snapshot_from_json(raw: Any) -> Snapshot:
    """
    Build a snapshot from decoded JSON.

    Accepts the dump format ``[{"path": ..., "data": ...}, ...]`` as well as a
    plain ``{path: document}`` object.

    Raises:
        ValueError: If the structure is neither form
    """
    if isinstance(raw, dict):
        return freeze_snapshot(raw)

    if not isinstance(raw, list):
        raise ValueError("snapshot must be a list of {path, data} records or an object")

    data: Dict[str, Any] = {}
    for record in raw:
        if not isinstance(record, dict) or not isinstance(record.get("path"), str):
            raise ValueError(f"invalid snapshot record: {record!r}")
        data[record["path"]] = record.get("data")
    return freeze_snapshot(data)


def load_snapshot(snapshot_path: str) -> Snapshot:
    """
    Load a snapshot file written by ``dump_snapshot``.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a valid snapshot
    """
    with open(Path(snapshot_path), 'r') as f:
        return snapshot_from_json(json.load(f))


def snapshot_to_records(snapshot: Snapshot) -> List[Dict[str, Any]]:
    return [{"path": path, "data": snapshot[path]} for path in sorted(snapshot)]


def dump_snapshot(snapshot: Snapshot, fp: TextIO) -> None:
    """Write a snapshot as JSON records sorted by path."""
    json.dump(snapshot_to_records(snapshot), fp, indent=2)
    fp.write("\n")


class FileSnapshotClient:
    """
    Redfish client replacement that serves a captured snapshot.

    Used on machines without a management controller. The file is re-read on
    every traversal; if it cannot be loaded the built-in dummy data is served.
    """

    def __init__(self, filename: str, logger: Optional[logging.Logger] = None):
        self.filename = filename
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self.default_data = snapshot_from_json(DEFAULT_DUMMY_DATA)

    async def traverse(self, rule: TraverseRule) -> Snapshot:
        try:
            return load_snapshot(self.filename)
        except (OSError, ValueError) as e:
            self.logger.error(
                f"cannot load dummy data file: {self.filename}",
                extra={"error": str(e)}
            )
            return self.default_data
