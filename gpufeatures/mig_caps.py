"""Mapping of MIG capability files to their device nodes."""

from __future__ import annotations

import logging
import re
from typing import Callable

logger = logging.getLogger(__name__)

NVIDIA_PROC_DRIVER_PATH = "/proc/driver/nvidia"
NVIDIA_CAPABILITIES_PATH = NVIDIA_PROC_DRIVER_PATH + "/capabilities"

NVCAPS_PROC_DRIVER_PATH = "/proc/driver/nvidia-caps"
NVCAPS_MIG_MINORS_PATH = NVCAPS_PROC_DRIVER_PATH + "/mig-minors"
NVCAPS_DEVICE_PATH = "/dev/nvidia-caps"

_INT = r"\s*([+-]?\d+)"

_PATTERNS: list[tuple[re.Pattern[str], Callable[..., str]]] = [
    (
        re.compile(rf"gpu{_INT}/gi{_INT}/ci{_INT}/access{_INT}"),
        lambda gpu, gi, ci: f"{NVIDIA_CAPABILITIES_PATH}/gpu{gpu}/mig/gi{gi}/ci{ci}/access",
    ),
    (
        re.compile(rf"gpu{_INT}/gi{_INT}/access{_INT}"),
        lambda gpu, gi: f"{NVIDIA_CAPABILITIES_PATH}/gpu{gpu}/mig/gi{gi}/access",
    ),
    (re.compile(rf"config{_INT}"), lambda: NVIDIA_CAPABILITIES_PATH + "/mig/config"),
    (re.compile(rf"monitor{_INT}"), lambda: NVIDIA_CAPABILITIES_PATH + "/mig/monitor"),
]


def parse_minors_line(line: str) -> tuple[str, int]:
    """Parse one line of the MIG minors file into (capability path, minor).

    Raises ValueError for a line in none of the known forms.
    """
    for pattern, build in _PATTERNS:
        match = pattern.match(line)
        if match:
            *ids, minor = (int(group) for group in match.groups())
            return build(*ids), minor
    raise ValueError(f"unparsable line: {line}")


def get_mig_capability_device_paths(minors_path: str = NVCAPS_MIG_MINORS_PATH) -> dict[str, str]:
    """Return a mapping of MIG capability path to device node path.

    A missing minors file means the node is not MIG capable and gives an
    empty mapping. Lines that cannot be parsed are logged and skipped.
    """
    try:
        handle = open(minors_path, encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        raise OSError(f"error opening MIG minors file: {exc}") from exc

    paths: dict[str, str] = {}
    with handle:
        for raw in handle:
            line = raw.rstrip("\r\n")
            try:
                cap_path, minor = parse_minors_line(line)
            except ValueError as exc:
                logger.error("Skipping line in MIG minors file: %s", exc)
                continue
            paths[cap_path] = f"{NVCAPS_DEVICE_PATH}/nvidia-cap{minor}"
    return paths