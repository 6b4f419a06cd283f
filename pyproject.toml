[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bosun"
version = "0.1.0"
description = "Building blocks for automating software delivery lifecycle tasks: config resolution, plans of actions, issue ordering and preview environment resolution."
requires-python = ">=3.10"
dependencies = []
keywords = ["sdlc", "automation", "release", "preview", "issues", "workflow"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bosun"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
