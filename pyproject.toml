[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "btmkit"
version = "0.1.0"
description = "Emulate and enumerate binary Turing machines"
requires-python = ">=3.10"
dependencies = []
keywords = ["turing machine", "busy beaver", "emulator", "enumeration", "computability"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
btm-emul = "btmkit.emulator:main"
btm-enum = "btmkit.enumerator:main"

[tool.hatch.build.targets.wheel]
packages = ["btmkit"]

[tool.pytest.ini_options]
addopts = "-ra"
