[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zeroplugins"
version = "0.1.0"
description = "Group-chat bot features: timed reminders, group management, song guessing and small utilities"
requires-python = ">=3.10"
keywords = ["chatbot", "qq", "group-management", "reminders", "cron", "sqlite"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Natural Language :: Chinese (Simplified)",
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
    "requests>=2.28",
    "pillow>=9.0",
    "lxml>=4.9",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
    "freezegun>=1.2",
]

[tool.hatch.build.targets.wheel]
packages = ["zeroplugins"]

[tool.hatch.build.targets.sdist]
include = ["zeroplugins", "tests"]

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
