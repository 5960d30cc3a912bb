[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "storagesim"
version = "0.1.0"
description = "A simulated disk manager and buffer pool for learning how database storage engines work"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "storage", "buffer-pool", "disk", "simulation", "pages"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["storagesim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
