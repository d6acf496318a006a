[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "marketsim"
version = "0.1.0"
description = "A stock market simulator with investors, order matching, price history in Redis and HTTP metrics endpoints"
requires-python = ">=3.10"
keywords = ["market", "simulation", "stock exchange", "trading", "prometheus", "redis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
market-sim = "marketsim.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["marketsim"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
