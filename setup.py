# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for flowrunner, a DAG workflow execution engine
"""

from setuptools import setup, find_packages

setup(
    name="flowrunner",
    version="0.1.0",
    description="DAG workflow execution engine with AI-backed nodes",
    package_dir={"": "backend"},
    packages=find_packages("backend", exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "aiofiles>=23.0.0",
        "openai>=1.0.0",
        "fastapi>=0.100.0",
        "httpx>=0.24.0",
        "uvicorn>=0.23.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "flowrunner=flowrunner.cli:main",
        ]
    },
)
