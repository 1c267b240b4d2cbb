[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rvsim"
version = "0.1.0"
description = "Cycle-counting RV32I processor simulator with instruction and data caches"
requires-python = ">=3.10"
dependencies = []
keywords = ["riscv", "rv32i", "simulator", "emulator", "cpu", "cache", "elf"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rvsim = "rvsim.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rvsim"]

[tool.pytest.ini_options]
addopts = "-ra"
