[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yrpckit"
version = "0.1.0"
description = "Cooperative routines, a selector event loop, timer queues and threading utilities for building RPC services"
requires-python = ">=3.10"
dependencies = []
keywords = ["rpc", "coroutine", "scheduler", "event-loop", "timer", "threadpool"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["yrpckit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
