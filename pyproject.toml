[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chnative"
version = "0.1.0"
description = "ClickHouse column types and the Native column wire format: type parsing, validation, encoding and decoding"
requires-python = ">=3.10"
dependencies = []
keywords = ["clickhouse", "native", "columnar", "serialization", "database"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["chnative"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
