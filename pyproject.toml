[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "npdetect"
version = "0.1.0"
description = "Node problem detection building blocks: detector options, custom plugin configuration, an exporter registry and node condition synchronisation."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "monitoring",
    "node",
    "health-check",
    "conditions",
    "problem-detection",
    "plugins",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["npdetect"]

[tool.hatch.build.targets.sdist]
include = ["npdetect", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
