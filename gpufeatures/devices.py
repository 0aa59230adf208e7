"""Device and manager interfaces, and a MIG-aware view of the node's devices."""

from __future__ import annotations

from typing import Any, Protocol


class Device(Protocol):
    """A full GPU or a MIG device as reported by the resource manager."""

    def name(self) -> str:
        """Return the product name, or the profile name of a MIG device."""

    def total_memory_mib(self) -> int:
        """Return the total memory of the device in MiB."""

    def cuda_compute_capability(self) -> tuple[int, int]:
        """Return the (major, minor) CUDA compute capability."""

    def attributes(self) -> dict[str, Any]:
        """Return the attributes of a MIG device, keyed by label suffix."""

    def parent(self) -> Device:
        """Return the full GPU that a MIG device belongs to."""

    def mig_devices(self) -> list[Device]:
        """Return the MIG devices configured on this GPU."""

    def is_mig_enabled(self) -> bool:
        """Return whether MIG mode is enabled."""

    def is_mig_capable(self) -> bool:
        """Return whether the device supports MIG."""

    def is_fabric_attached(self) -> bool:
        """Return whether the device is attached to an IMEX fabric."""

    def fabric_ids(self) -> tuple[str, str]:
        """Return the (cluster UUID, clique ID) of the fabric."""

    def pci_class(self) -> int:
        """Return the PCI class code of the device."""


class Manager(Protocol):
    """Access to the devices on a node and to driver information."""

    def init(self) -> None:
        """Prepare the manager for use."""

    def shutdown(self) -> None:
        """Release whatever init acquired."""

    def devices(self) -> list[Device]:
        """Return the full GPUs on the node."""

    def driver_version(self) -> str:
        """Return the driver version string, such as "535.104.05"."""

    def cuda_driver_version(self) -> tuple[int, int]:
        """Return the (major, minor) CUDA driver version."""


class DeviceInfo:
    """The devices of a manager, grouped by whether MIG is enabled.

    The grouping is computed on first use and kept afterwards.
    """

    def __init__(self, manager: Manager) -> None:
        self._manager = manager
        self._devices_map: dict[bool, list[Device]] | None = None

    def devices_map(self) -> dict[bool, list[Device]]:
        """Return the devices keyed by their MIG-enabled state."""
        if self._devices_map is None:
            grouped: dict[bool, list[Device]] = {}
            for device in self._manager.devices():
                grouped.setdefault(bool(device.is_mig_enabled()), []).append(device)
            self._devices_map = grouped
        return self._devices_map

    def devices_with_mig_enabled(self) -> list[Device]:
        """Return the devices with MIG enabled."""
        return self.devices_map().get(True, [])

    def devices_with_mig_disabled(self) -> list[Device]:
        """Return the devices with MIG disabled."""
        return self.devices_map().get(False, [])

    def any_mig_enabled_device_is_empty(self) -> bool:
        """Return whether some MIG-enabled device has no MIG devices.

        This holds trivially when no device has MIG enabled.
        """
        enabled = self.devices_with_mig_enabled()
        if not enabled:
            return True
        return any(not device.mig_devices() for device in enabled)

    def all_mig_devices(self) -> list[Device]:
        """Return the MIG devices of every MIG-enabled device."""
        return [mig for device in self.devices_with_mig_enabled() for mig in device.mig_devices()]