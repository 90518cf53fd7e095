[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sanctum"
version = "0.0.2"
description = "Shared data models, IPC messages and threat-intelligence event handling for the Sanctum endpoint protection engine."
requires-python = ">=3.10"
dependencies = []
keywords = ["edr", "security", "etw", "ipc", "threat-intelligence", "ioctl"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sanctum"]

[tool.pytest.ini_options]
addopts = "-ra"
