# setup.py
"""Setup script for the Feeder controller."""

from setuptools import setup, find_packages

setup(
    name="machine-feeder",
    version="1.0.0",
    packages=find_packages(include=["feeder", "feeder.*", "cli", "cli.*"]),
    include_package_data=True,
    install_requires=[
        "click>=8.0",
        "pyyaml>=6.0",
        "aiohttp>=3.8",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "structlog>=23.1",
        "tenacity>=8.2",
        "prometheus-client>=0.17",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "black>=23.0",
            "flake8>=6.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "feeder=cli.main:cli",
        ],
    },
    python_requires=">=3.9",
)
