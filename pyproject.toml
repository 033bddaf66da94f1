[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "commonapi"
version = "3.2.4"
description = "Middleware-independent runtime for proxies, stubs and pluggable IPC binding factories"
requires-python = ">=3.10"
dependencies = []
keywords = ["ipc", "middleware", "proxy", "stub", "rpc", "runtime"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Object Brokering",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["commonapi"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
