# gpufeatures

`gpufeatures` turns a description of the GPUs on a machine into a flat set of
node labels. Examples are `nvidia.com/gpu.product`, `nvidia.com/gpu.count`,
`nvidia.com/mig.strategy` and `nvidia.com/cuda.driver-version.full`. The labels
can be written as `key=value` lines to a file or to standard output.

The package does not talk to GPU drivers itself. You supply an object that
follows the `gpufeatures.devices.Manager` protocol. Its `devices()` method
returns objects that follow the `gpufeatures.devices.Device` protocol. The
labelers build labels only from what those objects report, so any source of
device information will do, including test doubles.

## Installation

```
pip install gpufeatures
```

To run the test suite:

```
pip install "gpufeatures[test]"
pytest
```

## Concepts

- **Labels** (`gpufeatures.labels.Labels`): a `dict` of label names to string
  values. It is also a labeler whose `labels()` method returns itself.
- **Labeler**: any object with a `labels()` method.
  - `gpufeatures.labels.merge(...)` combines labelers into a `LabelerList`.
    When two labelers set the same key, the later one wins.
  - `EmptyLabeler` produces no labels.
- **Config** (`gpufeatures.config.Config`) holds four parts:
  - `flags`: a `Flags` with the MIG strategy (`"none"`, `"single"` or `"mixed"`; see `MigStrategy`) and the `GFDFlags`. The `GFDFlags` set the machine-type file, the output file and `no_timestamp`.
  - `sharing`: a `Sharing` made of time-slicing or MPS `ReplicatedResources`.
  - `imex`: an `ImexConfig` with the IMEX channel IDs and whether they are required.

## Example

```python
from gpufeatures.config import Config, Flags, GFDFlags, MigStrategy
from gpufeatures.device_labelers import new_labelers
from gpufeatures.output import to_file

config = Config(
    flags=Flags(
        mig_strategy=MigStrategy.SINGLE,
        gfd=GFDFlags(output_file="/etc/features.d/gfd"),
    ),
)

# manager: your Manager implementation
# vgpu: an object whose devices() items offer info() with
#       host_driver_version and host_driver_branch
labeler = new_labelers(manager, vgpu, config)
to_file(config.flags.gfd.output_file).output(labeler.labels())
```

`new_labelers` calls `manager.init()` and evaluates the device labels
immediately. It then calls `manager.shutdown()`, even when an error is raised.
A node without devices yields no device labels. The vGPU labels are computed
each time `labels()` is called.

`to_file("")` writes to standard output. For any other path, the labels are
written to a temporary file in the same directory. That file gets mode 0644
and is then moved into place.

## Labelers

From `gpufeatures.device_labelers`:

- `new_version_labeler(manager)`: driver and CUDA version labels. Raises `ValueError` if the driver version is not of the form `X.Y[.Z]`.
- `new_mig_capability_labeler(manager)`: `nvidia.com/mig.capable`.
- `new_sharing_labeler(manager, config)`: `nvidia.com/mps.capable`. Raises `MPSSharingNotSupportedError` if MPS sharing is configured and a device has MIG enabled.
- `new_gpu_mode_labeler(devices)`: `nvidia.com/gpu.mode`. The value is `graphics`, `compute` or `unknown`, decided from the PCI class.

From `gpufeatures.mig_strategy`:

- `new_resource_labeler(manager, config)`: full GPU labels, plus MIG labels for the configured strategy.
- Under `single`, an invalid setup produces a product of `<model>-MIG-INVALID`. A setup is invalid if:
  - a MIG-enabled GPU has no MIG devices,
  - MIG-enabled and MIG-disabled GPUs are mixed, or
  - there is more than one MIG profile.

From `gpufeatures.resource`:

- `new_gpu_resource_labeler(config, device, count)`: labels for one full GPU model.
- `new_mig_resource_labeler(resource_name, config, device, count)`: labels for one MIG profile.
- Replicated resources get `-SHARED` appended to the product unless they are renamed.

From `gpufeatures.labels`:

- `new_machine_type_labeler(path)`: `nvidia.com/gpu.machine`.
- `new_timestamp_labeler(config)`: `nvidia.com/gfd.timestamp`. This is not part of `new_labelers`; merge it in yourself if you want it.
- `new_imex_labeler(config, devices)`: `nvidia.com/gpu.clique`, set when all fabric-attached devices share a cluster UUID and a clique ID.
- `VGPULabeler(lib)`: vGPU presence and host driver labels.

## Other helpers

- `gpufeatures.labels.sanitise(text)` cleans text for use in label values. For example, `"NVIDIA-TITAN-X-(Pascal)"` becomes `"NVIDIA-TITAN-X-Pascal"`.
- `gpufeatures.resource.get_arch_family(major, minor)` maps a CUDA compute capability to an architecture family name.
- `gpufeatures.imex.get_channels(config, dev_root)` returns the configured IMEX channels whose device nodes exist as character devices. If a required channel is missing, it raises `ImexChannelError`.
- `gpufeatures.mig_caps.get_mig_capability_device_paths(path)` reads a MIG minors file and maps capability paths to `/dev/nvidia-caps/nvidia-cap<N>` device nodes. A missing file gives an empty mapping.
- `gpufeatures.cuda_result.Result`, `DeviceAttribute`, `CudaError` and `result_name` describe CUDA driver result codes.
- `gpufeatures.version.get_version_string(*extra)` joins the build version (`"unknown"` unless set), the commit (if set) and any extra lines.

## What this package does not do

- It has no command-line program and no long-running daemon. You call the functions from your own code.
- It does not query GPUs, the driver or CUDA. All device data comes from the `Manager` and `Device` objects you provide.
- It does not publish labels to a cluster API. `Flags.use_node_feature_api` is carried in the configuration, but no outputer uses it. Only file and stream output exist.