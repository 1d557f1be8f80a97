[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bkoperator"
version = "0.1.0"
description = "Data model, pod building, admission checks and reconciliation for Buildkit instances defined by templates"
requires-python = ">=3.11"
dependencies = []
keywords = ["buildkit", "operator", "reconciler", "admission", "pod"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bkoperator"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
