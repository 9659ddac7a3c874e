[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nekort"
version = "0.1.0"
description = "Runtime core of a small dynamic virtual machine: values, calls, builtins, hashing, Unicode and UTF-8 helpers, an event XML parser, zlib streams, ELF bytecode lookup and the opcode table"
requires-python = ">=3.10"
dependencies = []
keywords = ["virtual machine", "runtime", "interpreter", "builtins", "unicode", "utf8", "xml", "zlib", "elf", "opcodes"]
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
    "Topic :: Software Development :: Interpreters",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nekort"]

[tool.pytest.ini_options]
addopts = "-ra"
