[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "startracker"
version = "0.1.0"
description = "Star catalogue synthesis, star identification and attitude estimation experiments"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "star tracker",
    "astrometry",
    "attitude determination",
    "star identification",
    "z-order",
    "morton code",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
startracker = "startracker.experiments:main"

[tool.hatch.build.targets.wheel]
packages = ["startracker"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
