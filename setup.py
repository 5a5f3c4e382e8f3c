#!/usr/bin/env python3
# This is free software for the public good of a permacomputer hosted at
# permacomputer.com, an always-on computer by the people, for the people.
# One which is durable, easy to repair, & distributed like tap water
# for machine learning intelligence.
#
# The permacomputer is community-owned infrastructure optimized around
# four values:
#
#   TRUTH      First principles, math & science, open source code freely distributed
#   FREEDOM    Voluntary partnerships, freedom from tyranny & corporate control
#   HARMONY    Minimal waste, self-renewing systems with diverse thriving connections
#   LOVE       Be yourself without hurting others, cooperation through natural law
#
# This software contributes to that vision by letting CI pipelines trigger, follow and clean up dbt Cloud job runs through a unified interface, accessible to all.
# Code is seeds to sprout on any abandoned technology.

"""
Setup script for the dbt Cloud job runner
"""

from setuptools import setup, find_packages

setup(
    name="dbt-cloud-run",
    version="1.0.0",
    description="Trigger dbt Cloud jobs from CI, wait for them, and collect their artifacts",
    long_description="Asynchronous dbt Cloud job runner for CI pipelines",
    author="dbt-cloud-run contributors",
    license="Public Domain",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "aiohttp>=3.8.0",
        "tenacity>=8.2",
        "pydantic>=2.5",
        "pydantic-settings>=2.7",
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.20.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "dbt-cloud-run=dbt_cloud_run.cli:cli_main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Public Domain License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Build Tools",
        "Topic :: Internet :: WWW/HTTP",
    ],
)
