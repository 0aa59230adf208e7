import pytest

from gpufeatures.config import Config, ReplicatedResource, ReplicatedResources, Sharing
from gpufeatures.resource import (
    FULL_GPU_RESOURCE_NAME,
    ResourceLabeler,
    get_arch_family,
    new_architecture_labels,
    new_gpu_resource_labeler,
    new_gpu_resource_labeler_without_sharing,
    new_mig_attribute_labels,
    new_mig_resource_labeler,
    resource_labeler_for,
)


class FakeDevice:
    def __init__(self, name, memory=300, compute=(8, 0), attributes=None, parent=None):
        self._name = name
        self._memory = memory
        self._compute = compute
        self._attributes = attributes or {}
        self._parent = parent

    def name(self):
        return self._name

    def total_memory_mib(self):
        return self._memory

    def cuda_compute_capability(self):
        return self._compute

    def attributes(self):
        return dict(self._attributes)

    def parent(self):
        return self._parent


def full_gpu():
    return FakeDevice("MOCKMODEL")


def mig_device(gi, ci, memory, extra=None):
    attributes = {
        "memory": memory,
        "multiprocessors": 0,
        "slices.gi": gi,
        "slices.ci": ci,
        "engines.copy": 0,
        "engines.decoder": 0,
        "engines.encoder": 0,
        "engines.jpeg": 0,
        "engines.ofa": 0,
    }
    attributes.update(extra or {})
    parent = FakeDevice("MOCKMODEL", compute=(0, 0))
    return FakeDevice(f"{gi}g.{memory}gb", memory=memory, compute=(0, 0), attributes=attributes, parent=parent)


def gpu_expected(replicas, strategy, product):
    return {
        "nvidia.com/gpu.count": "1",
        "nvidia.com/gpu.replicas": replicas,
        "nvidia.com/gpu.sharing-strategy": strategy,
        "nvidia.com/gpu.memory": "300",
        "nvidia.com/gpu.product": product,
        "nvidia.com/gpu.family": "ampere",
        "nvidia.com/gpu.compute.major": "8",
        "nvidia.com/gpu.compute.minor": "0",
    }


def ts(*resources):
    return Sharing(time_slicing=ReplicatedResources(list(resources)))


def mps(*resources):
    return Sharing(mps=ReplicatedResources(list(resources)))


GPU_CASES = [
    ("no sharing", 1, Sharing(), gpu_expected("1", "none", "MOCKMODEL")),
    (
        "time-slicing ignores non-matching resource",
        1,
        ts(ReplicatedResource(name="nvidia.com/not-gpu", replicas=2)),
        gpu_expected("1", "none", "MOCKMODEL"),
    ),
    (
        "time-slicing appends suffix",
        1,
        ts(ReplicatedResource(name="nvidia.com/gpu", replicas=2)),
        gpu_expected("2", "time-slicing", "MOCKMODEL-SHARED"),
    ),
    (
        "time-slicing renamed does not append suffix",
        1,
        ts(ReplicatedResource(name="nvidia.com/gpu", rename="nvidia.com/gpu.shared", replicas=2)),
        gpu_expected("2", "time-slicing", "MOCKMODEL"),
    ),
    (
        "mps ignores non-matching resource",
        1,
        mps(ReplicatedResource(name="nvidia.com/not-gpu", replicas=2)),
        gpu_expected("1", "none", "MOCKMODEL"),
    ),
    (
        "mps appends suffix",
        1,
        mps(ReplicatedResource(name="nvidia.com/gpu", replicas=2)),
        gpu_expected("2", "mps", "MOCKMODEL-SHARED"),
    ),
    (
        "mps renamed does not append suffix",
        1,
        mps(ReplicatedResource(name="nvidia.com/gpu", rename="nvidia.com/gpu.shared", replicas=2)),
        gpu_expected("2", "mps", "MOCKMODEL"),
    ),
]


@pytest.mark.parametrize("description,count,sharing,expected", GPU_CASES, ids=[c[0] for c in GPU_CASES])
def test_gpu_resource_labeler(description, count, sharing, expected):
    labeler = new_gpu_resource_labeler(Config(sharing=sharing), full_gpu(), count)
    assert labeler.labels() == expected


def test_gpu_resource_labeler_zero_count_is_empty():
    assert new_gpu_resource_labeler(Config(), full_gpu(), 0).labels() == {}


def mig_expected(prefix, replicas, strategy, product):
    return {
        f"{prefix}.count": "1",
        f"{prefix}.replicas": replicas,
        f"{prefix}.sharing-strategy": strategy,
        f"{prefix}.memory": "300",
        f"{prefix}.product": product,
        f"{prefix}.multiprocessors": "0",
        f"{prefix}.slices.gi": "1",
        f"{prefix}.slices.ci": "2",
        f"{prefix}.engines.copy": "0",
        f"{prefix}.engines.decoder": "0",
        f"{prefix}.engines.encoder": "0",
        f"{prefix}.engines.jpeg": "0",
        f"{prefix}.engines.ofa": "0",
    }


MIG_CASES = [
    (
        "no sharing",
        "nvidia.com/gpu",
        ReplicatedResources(),
        mig_expected("nvidia.com/gpu", "1", "none", "MOCKMODEL-MIG-1g.300gb"),
    ),
    (
        "shared appends suffix",
        "nvidia.com/gpu",
        ReplicatedResources([ReplicatedResource(name="nvidia.com/gpu", replicas=2)]),
        mig_expected("nvidia.com/gpu", "2", "time-slicing", "MOCKMODEL-MIG-1g.300gb-SHARED"),
    ),
    (
        "renamed does not append suffix",
        "nvidia.com/gpu",
        ReplicatedResources(
            [ReplicatedResource(name="nvidia.com/gpu", rename="nvidia.com/gpu.shared", replicas=2)]
        ),
        mig_expected("nvidia.com/gpu", "2", "time-slicing", "MOCKMODEL-MIG-1g.300gb"),
    ),
    (
        "mig mixed appends shared",
        "nvidia.com/mig-1g.1gb",
        ReplicatedResources(
            [
                ReplicatedResource(name="nvidia.com/gpu", rename="nvidia.com/gpu.shared", replicas=2),
                ReplicatedResource(name="nvidia.com/mig-1g.1gb", replicas=2),
            ]
        ),
        mig_expected("nvidia.com/mig-1g.1gb", "2", "time-slicing", "MOCKMODEL-MIG-1g.300gb-SHARED"),
    ),
    (
        "mig mixed rename does not append",
        "nvidia.com/mig-1g.1gb",
        ReplicatedResources(
            [
                ReplicatedResource(
                    name="nvidia.com/mig-1g.1gb", rename="nvidia.com/mig-1g.1gb.shared", replicas=2
                )
            ]
        ),
        mig_expected("nvidia.com/mig-1g.1gb", "2", "time-slicing", "MOCKMODEL-MIG-1g.300gb"),
    ),
]


@pytest.mark.parametrize("description,resource_name,time_slicing,expected", MIG_CASES, ids=[c[0] for c in MIG_CASES])
def test_mig_resource_labeler(description, resource_name, time_slicing, expected):
    config = Config(sharing=Sharing(time_slicing=time_slicing))
    labeler = new_mig_resource_labeler(resource_name, config, mig_device(1, 2, 300), 1)
    assert labeler.labels() == expected


def test_mig_resource_labeler_zero_count_is_empty():
    assert new_mig_resource_labeler("", Config(), mig_device(1, 2, 300), 0).labels() == {}


def test_without_sharing_reports_zero_replicas():
    labels = new_gpu_resource_labeler_without_sharing(full_gpu(), 2).labels()
    assert labels["nvidia.com/gpu.count"] == "2"
    assert labels["nvidia.com/gpu.replicas"] == "0"
    assert labels["nvidia.com/gpu.sharing-strategy"] == "none"
    assert labels["nvidia.com/gpu.product"] == "MOCKMODEL"


def test_zero_memory_omits_memory_label():
    device = FakeDevice("MOCKMODEL", memory=0)
    labels = new_gpu_resource_labeler(Config(), device, 1).labels()
    assert "nvidia.com/gpu.memory" not in labels
    assert labels["nvidia.com/gpu.count"] == "1"


def test_architecture_labels_empty_for_zero_major():
    rl = ResourceLabeler(FULL_GPU_RESOURCE_NAME)
    assert new_architecture_labels(rl, FakeDevice("x", compute=(0, 5))) == {}


def test_architecture_labels_for_hopper():
    rl = ResourceLabeler(FULL_GPU_RESOURCE_NAME)
    labels = new_architecture_labels(rl, FakeDevice("x", compute=(9, 0)))
    assert labels == {
        "nvidia.com/gpu.family": "hopper",
        "nvidia.com/gpu.compute.major": "9",
        "nvidia.com/gpu.compute.minor": "0",
    }


def test_mig_attribute_labels():
    rl = ResourceLabeler("nvidia.com/mig-1g.1gb")
    labels = new_mig_attribute_labels(rl, mig_device(1, 2, 300, {"engines.ofa": 17}))
    assert labels["nvidia.com/mig-1g.1gb.engines.ofa"] == "17"
    assert labels["nvidia.com/mig-1g.1gb.slices.ci"] == "2"


@pytest.mark.parametrize(
    "major,minor,family",
    [
        (1, 0, "tesla"),
        (2, 0, "fermi"),
        (3, 5, "kepler"),
        (5, 2, "maxwell"),
        (6, 1, "pascal"),
        (7, 0, "volta"),
        (7, 5, "turing"),
        (8, 0, "ampere"),
        (8, 6, "ampere"),
        (8, 9, "ada-lovelace"),
        (9, 0, "hopper"),
        (10, 0, "blackwell"),
        (12, 0, "blackwell"),
        (4, 0, "undefined"),
        (11, 0, "undefined"),
    ],
)
def test_get_arch_family(major, minor, family):
    assert get_arch_family(major, minor) == family


def test_key_and_single():
    rl = ResourceLabeler("nvidia.com/gpu")
    assert rl.key("count") == "nvidia.com/gpu.count"
    assert rl.single("memory", 300) == {"nvidia.com/gpu.memory": "300"}


def test_update_label_overwrites():
    rl = ResourceLabeler("nvidia.com/gpu")
    labels = rl.single("count", 1)
    rl.update_label(labels, "count", 0)
    rl.update_label(labels, "sharing-strategy", "")
    assert labels == {"nvidia.com/gpu.count": "0", "nvidia.com/gpu.sharing-strategy": ""}


def test_product_label_empty_parts():
    rl = ResourceLabeler("nvidia.com/gpu")
    assert rl.product_label("", "") == {}
    assert rl.product_label("MOCKMODEL", "MIG", "INVALID") == {
        "nvidia.com/gpu.product": "MOCKMODEL-MIG-INVALID"
    }


def test_product_name_sanitises_parts():
    rl = ResourceLabeler("nvidia.com/gpu")
    assert rl.product_name("NVIDIA TITAN X (Pascal)", "", "MIG") == "NVIDIA-TITAN-X-Pascal-MIG"


def test_replicas_and_sharing_state():
    disabled = resource_labeler_for("nvidia.com/gpu", None)
    assert disabled.sharing_disabled()
    assert disabled.replicas() == 0
    assert disabled.replication_info() is None

    sharing = ts(ReplicatedResource(name="nvidia.com/gpu", rename="nvidia.com/gpu.shared", replicas=4))
    shared = resource_labeler_for("nvidia.com/gpu", Config(sharing=sharing))
    assert not shared.sharing_disabled()
    assert shared.replicas() == 4
    assert shared.is_shared()
    assert shared.is_renamed()
    assert shared.replication_info().rename == "nvidia.com/gpu.shared"


def test_base_labeler_single_replica_keeps_strategy_none():
    sharing = ts(ReplicatedResource(name="nvidia.com/gpu", replicas=1))
    rl = ResourceLabeler("nvidia.com/gpu", sharing)
    assert rl.base_labeler(3, "MOCKMODEL") == {
        "nvidia.com/gpu.product": "MOCKMODEL",
        "nvidia.com/gpu.count": "3",
        "nvidia.com/gpu.replicas": "1",
        "nvidia.com/gpu.sharing-strategy": "none",
    }