"""Configuration used when generating node labels."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class MigStrategy(str, Enum):
    """How MIG devices are exposed as resources."""

    NONE = "none"
    SINGLE = "single"
    MIXED = "mixed"

    def __str__(self) -> str:
        return self.value


class SharingStrategy(str, Enum):
    """How a GPU is shared between workloads."""

    NONE = "none"
    TIME_SLICING = "time-slicing"
    MPS = "mps"

    def __str__(self) -> str:
        return self.value


@dataclass
class ReplicatedResource:
    """A resource that is advertised more than once."""

    name: str = ""
    rename: str = ""
    replicas: int = 0


@dataclass
class ReplicatedResources:
    """A set of replicated resources."""

    resources: list[ReplicatedResource] = field(default_factory=list)


def _is_replicated(resources: Optional[ReplicatedResources]) -> bool:
    if resources is None:
        return False
    return any(r.replicas > 1 for r in resources.resources)


@dataclass
class Sharing:
    """Sharing settings: time-slicing or MPS."""

    time_slicing: ReplicatedResources = field(default_factory=ReplicatedResources)
    mps: Optional[ReplicatedResources] = None

    def sharing_strategy(self) -> SharingStrategy:
        """Return the sharing strategy in effect."""
        if _is_replicated(self.mps):
            return SharingStrategy.MPS
        if _is_replicated(self.time_slicing):
            return SharingStrategy.TIME_SLICING
        return SharingStrategy.NONE

    def replicated_resources(self) -> ReplicatedResources:
        """Return the resources replicated by the sharing strategy in effect."""
        if self.sharing_strategy() is SharingStrategy.MPS and self.mps is not None:
            return self.mps
        return self.time_slicing


@dataclass
class ImexConfig:
    """IMEX channel selection."""

    channel_ids: list[int] = field(default_factory=list)
    required: bool = False


@dataclass
class GFDFlags:
    """Settings specific to feature discovery."""

    machine_type_file: str = ""
    output_file: str = ""
    no_timestamp: bool = False


@dataclass
class Flags:
    """Command-line settings."""

    mig_strategy: str = MigStrategy.NONE
    gfd: GFDFlags = field(default_factory=GFDFlags)
    use_node_feature_api: bool = False


@dataclass
class Config:
    """Complete configuration."""

    flags: Flags = field(default_factory=Flags)
    sharing: Sharing = field(default_factory=Sharing)
    imex: ImexConfig = field(default_factory=ImexConfig)