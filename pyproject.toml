[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "metricscollect"
version = "0.1.0"
description = "A metrics agent that samples process and host statistics and a server that stores and serves them over HTTP."
requires-python = ">=3.10"
keywords = ["metrics", "monitoring", "agent", "gauge", "counter", "telemetry"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "cryptography",
    "psutil",
    "requests",
    "werkzeug",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
metricscollect-agent = "metricscollect.agent.runner:main"
metricscollect-server = "metricscollect.server.app:main"

[tool.hatch.build.targets.wheel]
packages = ["metricscollect"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
