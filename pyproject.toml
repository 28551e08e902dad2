[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "respot"
version = "0.3.1"
description = "Client-side building blocks for the Spotify protocol: identifiers, credentials, caching, channels, discovery and metadata helpers"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
]
keywords = ["spotify", "spotify-connect", "audio", "streaming", "zeroconf"]
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
    "Topic :: Multimedia :: Sound/Audio :: Players",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["respot"]

[tool.hatch.build.targets.sdist]
include = ["respot", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
