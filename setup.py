#!/usr/bin/env python3
"""
Setup script for the Agent Server Demo Client
"""

from setuptools import setup, find_namespace_packages

setup(
    name="agent-demo-client",
    version="0.0.1",
    description="Scripted WebSocket demo client for the agent SDK server",
    packages=find_namespace_packages(include=["client", "client.*", "shared", "shared.*"]),
    install_requires=[
        "websockets>=15.0",
        "typer>=0.12.3",
        "rich>=13.9.2",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.2",
            "pytest-asyncio>=1.2.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'agent-demo-client=client.demo_cli:main',
        ],
    },
)
