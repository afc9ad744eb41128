[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tpbench"
version = "0.1.0"
description = "Transport throughput benchmark for TCP and TLS connections"
requires-python = ">=3.10"
dependencies = []
keywords = ["benchmark", "throughput", "tcp", "tls", "network"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tpbench = "tpbench.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["tpbench"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
