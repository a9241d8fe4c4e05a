"""Setup file for development installation."""

from setuptools import setup, find_packages

setup(
    name="adix-chat",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.7",
        "python-dotenv>=1.0",
        "httpx>=0.27",
        "structlog>=24.1",
        "prometheus-client>=0.19",
        "opentelemetry-instrumentation-fastapi>=0.44b0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
