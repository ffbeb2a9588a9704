#!/usr/bin/env python3

from setuptools import find_packages, setup

setup(
    name="polaris",
    version="0.1.0",
    description="A small Gemini protocol server for static files",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "cryptography>=42",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "polaris = polaris.kindergarten:cli",
        ],
    },
)
