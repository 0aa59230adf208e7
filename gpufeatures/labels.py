"""Labels, labelers and the simpler node labelers."""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Iterable, Protocol

from .config import Config, MigStrategy
from .devices import Device

logger = logging.getLogger(__name__)

MACHINE_TYPE_UNKNOWN = "unknown"

_UNSAFE = re.compile(r"[^A-Za-z0-9\-_. ]")


class Labels(dict):
    """A set of node labels; also a labeler that yields itself."""

    def labels(self) -> Labels:
        """Return these labels."""
        return self


class Labeler(Protocol):
    """Anything that produces labels."""

    def labels(self) -> Labels:
        """Return the generated labels."""


class EmptyLabeler:
    """A labeler that produces no labels."""

    def labels(self) -> Labels:
        """Return an empty set of labels."""
        return Labels()


class LabelerList(list):
    """A list of labelers that is itself a labeler."""

    def labels(self) -> Labels:
        """Return the labels of every labeler; later labels override earlier ones."""
        merged = Labels()
        for labeler in self:
            merged.update(labeler.labels())
        return merged


def merge(*args: Labeler) -> LabelerList:
    """Combine labelers into a single composite labeler."""
    return LabelerList(args)


def sanitise(text: str) -> str:
    """Drop characters not allowed in label values and join words with '-'."""
    return "-".join(_UNSAFE.sub("", text).split())


def mig_strategy_labeler(strategy: str) -> Labeler:
    """Return a labeler for the MIG strategy label; none gives no label."""
    if strategy == MigStrategy.NONE:
        return EmptyLabeler()
    return Labels({"nvidia.com/mig.strategy": str(strategy)})


def get_machine_type(path: str) -> str:
    """Read the machine type from a file; an empty path gives 'unknown'."""
    if not path:
        return MACHINE_TYPE_UNKNOWN
    try:
        with open(path, encoding="utf-8") as handle:
            data = handle.read()
    except OSError as exc:
        raise OSError(f"could not open machine type file: {exc}") from exc
    return data.strip()


def new_machine_type_labeler(machine_type_path: str) -> Labels:
    """Return the machine type label, falling back to 'unknown' on errors."""
    try:
        machine_type = get_machine_type(machine_type_path)
    except OSError as exc:
        logger.warning("Error getting machine type from %s: %s", machine_type_path, exc)
        machine_type = MACHINE_TYPE_UNKNOWN
    return Labels({"nvidia.com/gpu.machine": sanitise(machine_type)})


def new_timestamp_labeler(config: Config) -> Labeler:
    """Return the timestamp label, or no label when timestamps are disabled."""
    if config.flags.gfd.no_timestamp:
        return EmptyLabeler()
    return Labels({"nvidia.com/gfd.timestamp": str(int(time.time()))})


class VGPULabeler:
    """Labels describing the vGPU devices of a node.

    The library must offer devices(), whose items offer info() returning an
    object with host_driver_version and host_driver_branch.
    """

    def __init__(self, lib: Any) -> None:
        self.lib = lib

    def labels(self) -> Labels:
        """Return the vGPU labels; a failed device query gives none."""
        try:
            devices = self.lib.devices()
        except Exception:
            logger.exception("unable to get vGPU devices")
            return Labels()
        result = Labels({"nvidia.com/vgpu.present": "true" if devices else "false"})
        for device in devices:
            info = device.info()
            result["nvidia.com/vgpu.host-driver-version"] = info.host_driver_version
            result["nvidia.com/vgpu.host-driver-branch"] = info.host_driver_branch
        return result


def get_fabric_ids(devices: Iterable[Device]) -> tuple[str, str]:
    """Return the (cluster UUID, clique ID) shared by fabric-attached devices.

    Empty strings are returned when no device is attached or when the IDs
    differ between devices.
    """
    cluster_uuids: dict[str, list[int]] = {}
    clique_ids: dict[str, list[int]] = {}
    for index, device in enumerate(devices):
        if not device.is_fabric_attached():
            continue
        cluster_uuid, clique_id = device.fabric_ids()
        cluster_uuids.setdefault(cluster_uuid, []).append(index)
        clique_ids.setdefault(clique_id, []).append(index)

    if len(cluster_uuids) > 1:
        logger.warning("Cluster UUIDs are non-unique: %s", cluster_uuids)
        return "", ""
    if len(clique_ids) > 1:
        logger.warning("Clique IDs are non-unique: %s", clique_ids)
        return "", ""
    if cluster_uuids and clique_ids:
        return next(iter(cluster_uuids)), next(iter(clique_ids))
    return "", ""


def new_imex_labeler(config: Config, devices: Iterable[Device]) -> Labeler:
    """Return the IMEX clique label, or no label without a common fabric."""
    cluster_uuid, clique_id = get_fabric_ids(devices)
    if not cluster_uuid or not clique_id:
        return EmptyLabeler()
    return Labels({"nvidia.com/gpu.clique": f"{cluster_uuid}.{clique_id}"})