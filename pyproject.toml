[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "finlogger"
version = "0.1.0"
description = "Data logging core for a surf-fin ocean sensor: ensemble packing, session recording, fault log, text encodings and upload flow"
requires-python = ">=3.10"
dependencies = []
keywords = ["oceanography", "data logger", "sensor", "base64", "base85", "fault log"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Oceanography",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["finlogger"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
