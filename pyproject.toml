[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ethwire"
version = "0.1.0"
description = "Asyncio JSON-RPC transports for Ethereum nodes, with confirmations, secp256k1 signing and ABI token conversion"
requires-python = ">=3.10"
keywords = ["ethereum", "json-rpc", "web3", "websocket", "ipc", "abi", "secp256k1"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Typing :: Typed",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "httpx",
    "websockets",
    "pycryptodome",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["ethwire"]

[tool.pytest.ini_options]
addopts = "-ra"
