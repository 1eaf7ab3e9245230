[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sysmonview"
version = "0.1.0"
description = "Viewer for Sysmon syslog XML events, with helpers for procfs, timestamps, wide strings and network tracking"
requires-python = ">=3.10"
dependencies = []
keywords = ["sysmon", "syslog", "monitoring", "events", "xml", "procfs", "utf-16"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sysmonview = "sysmonview.logview:main"

[tool.hatch.build.targets.wheel]
packages = ["sysmonview"]

[tool.pytest.ini_options]
addopts = "-ra"
