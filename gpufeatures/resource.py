"""Labels that describe a GPU or MIG resource."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

from .config import Config, ReplicatedResource, Sharing, SharingStrategy
from .devices import Device
from .labels import EmptyLabeler, Labeler, Labels, merge, sanitise

FULL_GPU_RESOURCE_NAME = "nvidia.com/gpu"


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class ResourceLabeler:
    """Builds labels keyed by a fully qualified resource name."""

    def __init__(self, resource_name: str, sharing: Optional[Sharing] = None) -> None:
        self.resource_name = resource_name
        self.sharing = sharing

    def single(self, suffix: str, value: Any) -> Labels:
        """Return one label <resource-name>.<suffix> with the given value."""
        return self.labels_for({suffix: value})

    def labels_for(self, suffix_values: Mapping[str, Any]) -> Labels:
        """Return a label <resource-name>.<suffix> for each entry of the mapping."""
        result = Labels()
        for suffix, value in suffix_values.items():
            self.update_label(result, suffix, value)
        return result

    def update_label(self, labels: Labels, suffix: str, value: Any) -> None:
        """Set <resource-name>.<suffix> in the given labels."""
        labels[self.key(suffix)] = _format_value(value)

    def key(self, suffix: str) -> str:
        """Return the label key <resource-name>.<suffix>."""
        return f"{self.resource_name}.{suffix}"

    def base_labeler(self, count: int, *args: str) -> Labels:
        """Return the product, count, replicas and sharing-strategy labels."""
        replicas = self.replicas()
        strategy = SharingStrategy.NONE
        if self.sharing is not None and replicas > 1:
            strategy = self.sharing.sharing_strategy()
        return self.labels_for(
            {
                "product": self.product_name(*args),
                "count": count,
                "replicas": replicas,
                "sharing-strategy": strategy,
            }
        )

    def product_label(self, *args: str) -> Labels:
        """Return the product label, or no labels when the name is empty."""
        name = self.product_name(*args)
        if not name:
            return Labels()
        return self.single("product", name)

    def product_name(self, *args: str) -> str:
        """Join the sanitised non-empty parts with '-', marking shared resources."""
        parts = [sanitise(part) for part in args if part]
        if not parts:
            return ""
        if self.is_shared() and not self.is_renamed():
            parts.append("SHARED")
        return "-".join(parts)

    def replicas(self) -> int:
        """Return the number of replicas: 0 without sharing, at least 1 otherwise."""
        if self.sharing_disabled():
            return 0
        info = self.replication_info()
        if info is not None and info.replicas > 0:
            return info.replicas
        return 1

    def sharing_disabled(self) -> bool:
        """Return whether sharing is disabled for this resource."""
        return self.sharing is None

    def is_shared(self) -> bool:
        """Return whether the resource is replicated more than once."""
        info = self.replication_info()
        return info is not None and info.replicas > 1

    def is_renamed(self) -> bool:
        """Return whether the replicated resource is advertised under a new name."""
        info = self.replication_info()
        return info is not None and bool(info.rename)

    def replication_info(self) -> Optional[ReplicatedResource]:
        """Return the replication settings for this resource, if any."""
        if self.sharing is None:
            return None
        for resource in self.sharing.replicated_resources().resources:
            if resource.name == self.resource_name:
                return resource
        return None


def resource_labeler_for(resource_name: str, config: Optional[Config]) -> ResourceLabeler:
    """Return a resource labeler; a missing config disables sharing."""
    sharing = config.sharing if config is not None else None
    return ResourceLabeler(resource_name, sharing)


def new_gpu_resource_labeler(config: Optional[Config], device: Device, count: int) -> Labeler:
    """Return the labeler for a full GPU model present `count` times."""
    if count == 0:
        return EmptyLabeler()

    model = device.name()
    total_memory_mib = device.total_memory_mib()
    rl = resource_labeler_for(FULL_GPU_RESOURCE_NAME, config)
    architecture = new_architecture_labels(rl, device)

    memory: Labeler = EmptyLabeler()
    if total_memory_mib != 0:
        memory = rl.single("memory", total_memory_mib)

    return merge(rl.base_labeler(count, model), memory, architecture)


def new_gpu_resource_labeler_without_sharing(device: Device, count: int) -> Labeler:
    """Return the labeler for a full GPU with no sharing labels applied."""
    return new_gpu_resource_labeler(None, device, count)


def new_mig_resource_labeler(
    resource_name: str, config: Optional[Config], device: Device, count: int
) -> Labeler:
    """Return the labeler for a MIG device advertised under `resource_name`."""
    if count == 0:
        return EmptyLabeler()

    model = device.parent().name()
    mig_profile = device.name()
    rl = resource_labeler_for(resource_name, config)
    attributes = new_mig_attribute_labels(rl, device)

    return merge(rl.base_labeler(count, model, "MIG", mig_profile), attributes)


def new_mig_attribute_labels(rl: ResourceLabeler, device: Device) -> Labels:
    """Return a label for each attribute of a MIG device."""
    return rl.labels_for(device.attributes())


def new_architecture_labels(rl: ResourceLabeler, device: Device) -> Labels:
    """Return the architecture family and compute capability labels."""
    major, minor = device.cuda_compute_capability()
    if major == 0:
        return Labels()
    return rl.labels_for(
        {
            "family": get_arch_family(major, minor),
            "compute.major": major,
            "compute.minor": minor,
        }
    )


def get_arch_family(compute_major: int, compute_minor: int) -> str:
    """Return the architecture family for a CUDA compute capability."""
    if compute_major == 7:
        return "volta" if compute_minor < 5 else "turing"
    if compute_major == 8:
        return "ampere" if compute_minor < 9 else "ada-lovelace"
    return {
        1: "tesla",
        2: "fermi",
        3: "kepler",
        5: "maxwell",
        6: "pascal",
        9: "hopper",
        10: "blackwell",
        12: "blackwell",
    }.get(compute_major, "undefined")