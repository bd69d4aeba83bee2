[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "starkvm"
version = "0.1.0"
description = "Words, programs, chips, execution traces and constraint checking for a STARK-provable virtual machine"
requires-python = ">=3.10"
dependencies = []
keywords = ["stark", "zero-knowledge", "virtual-machine", "air", "constraints", "trace", "lookup"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["starkvm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
