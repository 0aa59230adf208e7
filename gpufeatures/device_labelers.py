"""Node labelers built from the devices and driver reported by a resource manager."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from .config import Config, SharingStrategy
from .devices import Device, Manager
from .labels import (
    EmptyLabeler,
    Labeler,
    Labels,
    VGPULabeler,
    merge,
    new_imex_labeler,
    new_machine_type_labeler,
)
from .mig_strategy import new_resource_labeler

logger = logging.getLogger(__name__)

PCI_VGA_CONTROLLER_CLASS = 0x030000
PCI_3D_CONTROLLER_CLASS = 0x030200


class MPSSharingNotSupportedError(Exception):
    """Raised when MPS sharing is requested on a node where it cannot work."""


def _bool_label(value: bool) -> str:
    return "true" if value else "false"


def new_device_labeler(manager: Manager, config: Config) -> Labeler:
    """Return the labeler for all device-derived labels of the node.

    The manager is initialised for the duration of the call and shut down
    afterwards, also when an error is raised. A node without devices gives
    no labels.
    """
    manager.init()
    try:
        devices = manager.devices()
        if not devices:
            return EmptyLabeler()

        # Each labeler is evaluated here, while the manager is initialised.
        return merge(
            new_machine_type_labeler(config.flags.gfd.machine_type_file),
            new_version_labeler(manager),
            new_mig_capability_labeler(manager).labels(),
            new_sharing_labeler(manager, config),
            new_resource_labeler(manager, config).labels(),
            new_gpu_mode_labeler(devices),
            new_imex_labeler(config, devices).labels(),
        )
    finally:
        try:
            manager.shutdown()
        except Exception:
            logger.debug("ignoring error while shutting down the resource manager", exc_info=True)


def new_version_labeler(manager: Manager) -> Labels:
    """Return the CUDA and driver version labels.

    Raises ValueError when the driver version is not of the form X.Y[.Z].
    """
    driver_version = manager.driver_version()
    parts = driver_version.split(".")
    if not 2 <= len(parts) <= 3:
        raise ValueError(
            f'error getting driver version: Version "{driver_version}" '
            'does not match format "X.Y[.Z]"'
        )
    driver_major, driver_minor = parts[0], parts[1]
    driver_rev = parts[2] if len(parts) > 2 else ""

    cuda_major, cuda_minor = manager.cuda_driver_version()

    return Labels(
        {
            # Deprecated labels
            "nvidia.com/cuda.driver.major": driver_major,
            "nvidia.com/cuda.driver.minor": driver_minor,
            "nvidia.com/cuda.driver.rev": driver_rev,
            "nvidia.com/cuda.runtime.major": str(cuda_major),
            "nvidia.com/cuda.runtime.minor": str(cuda_minor),
            # Current labels
            "nvidia.com/cuda.driver-version.major": driver_major,
            "nvidia.com/cuda.driver-version.minor": driver_minor,
            "nvidia.com/cuda.driver-version.revision": driver_rev,
            "nvidia.com/cuda.driver-version.full": driver_version,
            "nvidia.com/cuda.runtime-version.major": str(cuda_major),
            "nvidia.com/cuda.runtime-version.minor": str(cuda_minor),
            "nvidia.com/cuda.runtime-version.full": f"{cuda_major}.{cuda_minor}",
        }
    )


def new_mig_capability_labeler(manager: Manager) -> Labeler:
    """Return the mig.capable label: true if any GPU on the node supports MIG."""
    devices = manager.devices()
    if not devices:
        return EmptyLabeler()
    capable = any(device.is_mig_capable() for device in devices)
    return Labels({"nvidia.com/mig.capable": _bool_label(capable)})


def new_sharing_labeler(manager: Optional[Manager], config: Optional[Config]) -> Labels:
    """Return the mps.capable label.

    Raises MPSSharingNotSupportedError when MPS sharing is configured on a
    node with MIG-enabled devices.
    """
    if config is None or config.sharing.sharing_strategy() is not SharingStrategy.MPS:
        return Labels({"nvidia.com/mps.capable": "false"})
    if manager is None:
        raise ValueError("a resource manager is required to check MPS capability")
    return Labels({"nvidia.com/mps.capable": _bool_label(is_mps_capable(manager))})


def is_mps_capable(manager: Manager) -> bool:
    """Return True when no device has MIG enabled; raise otherwise."""
    for device in manager.devices():
        if device.is_mig_enabled():
            raise MPSSharingNotSupportedError("MPS sharing is not supported for mig devices")
    return True


def new_gpu_mode_labeler(devices: Iterable[Device]) -> Labels:
    """Return the gpu.mode label: graphics, compute or unknown."""
    try:
        classes = get_device_classes(devices)
    except Exception as exc:
        logger.warning(
            "Failed to create GPU mode labeler: failed to get device classes: %s", exc
        )
        return Labels({"nvidia.com/gpu.mode": "unknown"})
    return Labels({"nvidia.com/gpu.mode": get_mode_for_classes(classes)})


def get_mode_for_classes(classes: list[int]) -> str:
    """Return the GPU mode shared by all PCI classes, or 'unknown'."""
    if not classes:
        return "unknown"
    first = classes[0]
    if any(cls != first for cls in classes):
        logger.info(
            "Not all GPU devices belong to the same class %s",
            ", ".join(f"{cls:#06x}" for cls in classes),
        )
        return "unknown"
    if first == PCI_VGA_CONTROLLER_CLASS:
        return "graphics"
    if first == PCI_3D_CONTROLLER_CLASS:
        return "compute"
    return "unknown"


def get_device_classes(devices: Iterable[Device]) -> list[int]:
    """Return the distinct PCI classes of the devices, in first-seen order."""
    return list(dict.fromkeys(device.pci_class() for device in devices))


def new_labelers(manager: Manager, vgpu: Any, config: Config) -> Labeler:
    """Return the composite labeler of device labels and vGPU labels."""
    return merge(new_device_labeler(manager, config), VGPULabeler(vgpu))