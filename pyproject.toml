[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webtracker"
version = "0.1.0"
description = "Capture live network traffic statistics to a CSV log and graph them over time"
requires-python = ">=3.10"
keywords = ["network", "packet", "capture", "dns", "traffic", "monitoring", "csv", "graph"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
]
dependencies = [
    "dnspython",
    "psutil",
    "matplotlib",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
webtracker = "webtracker.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["webtracker"]

[tool.pytest.ini_options]
addopts = "-ra"
