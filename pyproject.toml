[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "brewbot"
version = "0.1.0"
description = "A Discord bot for homebrew clubs: brew-day polls, brewer rotation, recipes, ratings and a live blackboard."
requires-python = ">=3.10"
keywords = ["discord", "bot", "homebrew", "beer", "brewing", "poll"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "httpx",
    "websockets",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
    "respx",
]

[project.scripts]
brewbot = "brewbot.bot:main"

[tool.hatch.build.targets.wheel]
packages = ["brewbot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
