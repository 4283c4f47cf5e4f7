[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "embedsan"
version = "0.1.0"
description = "Vector clock shadow state and lock-guarded atomic memory primitives for data race detection"
requires-python = ">=3.10"
dependencies = []
keywords = ["race detection", "vector clock", "epoch", "atomics", "concurrency", "sanitizer"]
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
    "Topic :: Software Development :: Quality Assurance",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["embedsan"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
