[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bftlab"
version = "0.1.0"
description = "Building blocks for Byzantine fault tolerant consensus: epoch configurations, SMR contexts, Ed25519 signatures and a discrete-event network simulator."
requires-python = ">=3.10"
keywords = ["bft", "consensus", "byzantine", "simulation", "state-machine-replication", "ed25519"]
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
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["bftlab"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
