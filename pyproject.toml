[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yanmirestore"
version = "0.1.0"
description = "Safety-first data recovery toolkit: scan plans, scan reports and read-only extraction of recoverable files"
requires-python = ">=3.10"
dependencies = [
    "tqdm",
]
keywords = [
    "data-recovery",
    "undelete",
    "forensics",
    "carving",
    "ntfs",
    "fat",
    "exfat",
    "ext4",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: Chinese (Simplified)",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Recovery Tools",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["yanmirestore"]

[tool.pytest.ini_options]
addopts = "-ra"
