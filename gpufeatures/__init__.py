"""Build node labels describing GPUs, MIG devices, sharing, IMEX and driver versions."""

__version__ = "0.17.1"