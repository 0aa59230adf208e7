"""Resource labels for full GPUs and for MIG devices under each MIG strategy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from .config import Config, MigStrategy
from .devices import Device, DeviceInfo, Manager
from .labels import EmptyLabeler, Labeler, LabelerList, Labels, merge, mig_strategy_labeler
from .resource import (
    FULL_GPU_RESOURCE_NAME,
    ResourceLabeler,
    new_gpu_resource_labeler,
    new_gpu_resource_labeler_without_sharing,
    new_mig_resource_labeler,
)

logger = logging.getLogger(__name__)


@dataclass
class MigResource:
    """A MIG device type: the resource name it is labelled under, a sample device and a count."""

    name: str
    device: Device
    count: int = 0


def new_resource_labeler(manager: Manager, config: Config) -> Labeler:
    """Return the labeler for the node's GPU resources.

    Full GPU labels are always produced; MIG labels are added according to
    the configured MIG strategy. A node without devices gives no labels.
    """
    if not manager.devices():
        return EmptyLabeler()

    full_gpu_labeler = new_gpu_labelers(manager, config)

    if config.flags.mig_strategy == MigStrategy.NONE:
        return full_gpu_labeler

    return merge(full_gpu_labeler, new_mig_labeler(manager, config))


def new_mig_labeler(manager: Manager, config: Config) -> Labeler:
    """Return the MIG labeler for the configured strategy.

    Raises ValueError for an unknown strategy.
    """
    strategy = config.flags.mig_strategy
    if strategy == MigStrategy.NONE:
        labeler: Labeler = EmptyLabeler()
    elif strategy == MigStrategy.SINGLE:
        labeler = new_mig_strategy_single_labeler(manager, config)
    elif strategy == MigStrategy.MIXED:
        labeler = new_mig_strategy_mixed_labeler(manager, config)
    else:
        raise ValueError(f"unknown strategy: {strategy}")

    return merge(mig_strategy_labeler(strategy), labeler)


def new_gpu_labelers(manager: Manager, config: Config) -> Labels:
    """Return the labels for the full GPUs on the node.

    MIG-enabled GPUs are labelled without sharing; GPUs with MIG disabled
    are labelled with sharing and override MIG-enabled GPUs of the same name.
    Raises RuntimeError when the node has no GPUs.
    """
    devices_map = DeviceInfo(manager).devices_map()
    if not devices_map:
        raise RuntimeError("no GPU devices detected")

    counts: dict[str, int] = {}
    mig_enabled_devices: dict[str, Device] = {}
    for device in devices_map.get(True, []):
        name = device.name()
        mig_enabled_devices[name] = device
        counts[name] = counts.get(name, 0) + 1

    full_gpus: dict[str, Device] = {}
    for device in devices_map.get(False, []):
        name = device.name()
        full_gpus[name] = device
        counts[name] = counts.get(name, 0) + 1

    if len(counts) > 1:
        logger.warning("Multiple device types detected: %s", list(counts))

    labelers = LabelerList()
    for name, device in mig_enabled_devices.items():
        labelers.append(new_gpu_resource_labeler_without_sharing(device, counts[name]))
    for name, device in full_gpus.items():
        labelers.append(new_gpu_resource_labeler(config, device, counts[name]))

    return labelers.labels()


def _collect_mig_resources(manager: Manager, name_for) -> dict[str, MigResource]:
    resources: dict[str, MigResource] = {}
    for mig in DeviceInfo(manager).all_mig_devices():
        profile = mig.name()
        resource = resources.get(profile)
        if resource is None:
            resource = MigResource(name=name_for(profile), device=mig)
            resources[profile] = resource
        resource.count += 1
    return resources


def new_mig_strategy_single_labeler(manager: Manager, config: Config) -> Labeler:
    """Return the labeler for mig-strategy=single.

    An invalid configuration (an empty MIG-enabled GPU, a mix of MIG-enabled
    and MIG-disabled GPUs, or more than one MIG profile) gives the invalid labels.
    """
    device_info = DeviceInfo(manager)
    mig_enabled = device_info.devices_with_mig_enabled()
    if not mig_enabled:
        return EmptyLabeler()

    if device_info.any_mig_enabled_device_is_empty():
        return new_invalid_mig_strategy_labeler(
            mig_enabled[0], "at least one MIG device is enabled but empty"
        )

    if device_info.devices_with_mig_disabled():
        return new_invalid_mig_strategy_labeler(
            mig_enabled[0], "devices with MIG enabled and disable detected"
        )

    resources = _collect_mig_resources(manager, lambda _profile: FULL_GPU_RESOURCE_NAME)
    if len(resources) != 1:
        return new_invalid_mig_strategy_labeler(
            mig_enabled[0], "more than one MIG device type present on node"
        )

    return new_mig_device_labelers(resources, config)


def new_invalid_mig_strategy_labeler(device: Device, reason: str) -> Labels:
    """Return the labels that mark an invalid mig-strategy=single configuration."""
    logger.warning("Invalid configuration detected for mig-strategy=single: %s", reason)

    model = device.name()
    rl = ResourceLabeler(FULL_GPU_RESOURCE_NAME)
    labels = rl.product_label(model, "MIG", "INVALID")
    rl.update_label(labels, "count", 0)
    rl.update_label(labels, "replicas", 0)
    rl.update_label(labels, "sharing-strategy", "")
    rl.update_label(labels, "memory", 0)
    return labels


def new_mig_strategy_mixed_labeler(manager: Manager, config: Config) -> Labeler:
    """Return the labeler for mig-strategy=mixed: one resource per MIG profile."""
    resources = _collect_mig_resources(manager, lambda profile: "nvidia.com/mig-" + profile)
    return new_mig_device_labelers(resources, config)


def new_mig_device_labelers(resources: Mapping[str, MigResource], config: Config) -> LabelerList:
    """Return a labeler for each MIG resource."""
    return LabelerList(
        new_mig_resource_labeler(resource.name, config, resource.device, resource.count)
        for resource in resources.values()
    )