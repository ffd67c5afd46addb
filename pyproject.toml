[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "couponsvc"
version = "0.1.0"
description = "A small coupon campaign service with SQLite-backed campaigns, transactional coupon issuing, a JSON-over-HTTP server and a load-testing client."
requires-python = ">=3.10"
dependencies = []
keywords = ["coupon", "campaign", "sqlite", "http", "json", "load-test"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
couponsvc-server = "couponsvc.server:main"
couponsvc-client = "couponsvc.client:main"

[tool.hatch.build.targets.wheel]
packages = ["couponsvc"]

[tool.pytest.ini_options]
addopts = "-ra"
