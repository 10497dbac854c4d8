[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nfs3kit"
version = "0.1.0"
description = "Building blocks for NFSv3 tooling: XDR codec, ONC RPC, portmapper and mount clients, and server-side caches"
requires-python = ">=3.10"
dependencies = []
keywords = ["nfs", "nfsv3", "xdr", "onc-rpc", "portmapper", "mount", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["nfs3kit"]

[tool.hatch.build.targets.sdist]
include = ["nfs3kit", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
