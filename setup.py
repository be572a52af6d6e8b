#!/usr/bin/env python3
"""
Setup script for kmetrics.
Collects Kubernetes node and container usage into InfluxDB and serves it over HTTP.
"""

from setuptools import setup, find_packages

setup(
    name="kmetrics",
    version="1.0.0",
    description="Kubernetes CPU and memory usage telemetry backed by InfluxDB",
    python_requires=">=3.10",
    packages=find_packages(include=["kmetrics", "kmetrics.*"]),
    install_requires=[
        "fastapi>=0.100",
        "uvicorn[standard]>=0.23",
        "pydantic>=2.0",
        "httpx>=0.24",
        "pyyaml>=6.0",
        "kubernetes>=28.1",
        "influxdb-client>=1.38",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "kmetrics=kmetrics.__main__:main",
        ],
    },
)
