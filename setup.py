"""Setup script for the Conductor package."""

from setuptools import setup, find_packages

setup(
    name="conductor-orchestration",
    version="0.1.0",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "structlog>=23.2",
        "tenacity>=8.2",
        "prometheus-client>=0.19",
        "langchain-core>=0.2",
        "langchain-ollama>=0.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "conductor=conductor.cli:main",
        ],
    },
    description="Conductor - task graph orchestration for specialized agents",
    author="Conductor Team",
)
