[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "credentialsd"
version = "0.1.0"
description = "Data model, wire encoding and view-model logic for a WebAuthn credential service and its trusted UI"
requires-python = ">=3.10"
dependencies = []
keywords = ["webauthn", "fido2", "passkey", "ctap", "cbor", "cose", "credentials"]
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
    "Topic :: Security",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["credentialsd"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
