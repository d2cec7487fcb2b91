[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "capntools"
version = "0.1.0"
description = "Load balancer configuration, launch options, machine helpers and a local simplestreams index for Incus/LXD based Kubernetes clusters"
requires-python = ">=3.10"
keywords = [
    "incus",
    "lxd",
    "lxc",
    "kubernetes",
    "cluster-api",
    "haproxy",
    "kube-vip",
    "simplestreams",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "jinja2",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["capntools"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
