[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tpmkit"
version = "0.1.0"
description = "TPM 2.0 response codes, wire marshalling and a minimal command-processing context"
requires-python = ">=3.10"
dependencies = []
keywords = ["tpm", "tpm2", "marshalling", "drbg", "security"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tpmkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
