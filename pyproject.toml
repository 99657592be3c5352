[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ferretwire"
version = "0.1.0"
description = "BSON document types and MongoDB wire protocol message encoding and decoding"
requires-python = ">=3.10"
keywords = ["mongodb", "wire-protocol", "bson", "op_msg", "op_query", "op_reply"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ferretwire"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
