[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ssm2dash"
version = "0.1.0"
description = "Live dashboard for Subaru SSM2 ECU data over a serial link, served to the browser via HTTP and WebSocket"
requires-python = ">=3.10"
keywords = ["ssm2", "ecu", "serial", "dashboard", "websocket"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]
dependencies = [
    "pyserial",
    "websockets",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ssm2dash = "ssm2dash.main:main"

[tool.hatch.build.targets.wheel]
packages = ["ssm2dash"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
