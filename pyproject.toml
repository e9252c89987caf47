[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uarchsim"
version = "0.1.0"
description = "Building blocks of a trace-driven microarchitecture simulator: trace formats, trace readers, virtual memory, statistics printing and a CVP trace converter"
requires-python = ">=3.10"
dependencies = []
keywords = ["microarchitecture", "simulator", "trace", "branch prediction", "virtual memory"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Education",
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
cvp2trace = "uarchsim.cvp:main"

[tool.hatch.build.targets.wheel]
packages = ["uarchsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
