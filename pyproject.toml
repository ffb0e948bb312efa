[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hoststat"
version = "0.1.0"
description = "Network and process statistics for Linux, macOS and the BSDs"
requires-python = ">=3.10"
dependencies = []
keywords = ["monitoring", "netstat", "process", "network", "conntrack", "proc"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: BSD",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hoststat"]

[tool.pytest.ini_options]
addopts = "-ra"
