[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "petmsngr"
version = "0.1.0"
description = "A small messenger service: user sign-up, one-to-one chats and WebSocket message relay over HTTP"
requires-python = ">=3.10"
keywords = ["messenger", "chat", "websocket", "aiohttp", "postgres"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "aiohttp>=3.9",
    "pyyaml>=6.0",
    "sqlalchemy>=2.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
    "pytest-mock>=3.12",
]

[project.scripts]
petmsngr = "petmsngr.app:main"

[tool.hatch.build.targets.wheel]
packages = ["petmsngr"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
