[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gpufeatures"
version = "0.17.1"
description = "Generate node labels describing GPUs, MIG devices, sharing and driver versions"
requires-python = ">=3.10"
dependencies = []
keywords = ["gpu", "labels", "mig", "node-features", "kubernetes", "imex"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gpufeatures"]

[tool.pytest.ini_options]
addopts = "-ra"
