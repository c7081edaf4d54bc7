[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "frrk8s"
version = "0.1.0"
description = "FRR configuration resource types, BGP community parsing, configuration admission checks and a Prometheus exporter for FRR BGP/BFD metrics"
requires-python = ">=3.10"
dependencies = []
keywords = ["frr", "bgp", "bfd", "kubernetes", "prometheus", "metrics", "routing", "vtysh"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
frrk8s-metrics-exporter = "frrk8s.exporter:main"

[tool.hatch.build.targets.wheel]
packages = ["frrk8s"]

[tool.pytest.ini_options]
addopts = "-ra"
