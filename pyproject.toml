[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "witshe"
version = "0.1.0"
description = "tmux + git worktrees = threads"
requires-python = ">=3.10"
keywords = ["tmux", "git", "worktree", "sessions", "workflow", "cli"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
    "Topic :: Utilities",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
witshe = "witshe.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["witshe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
