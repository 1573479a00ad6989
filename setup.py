"""Setup configuration for Sanctum DMS package."""

from setuptools import setup, find_namespace_packages

setup(
    name="sanctum-dms",
    version="1.0.0",
    description="Dealer management store with a self-healing SQLite schema",
    author="Sanctum",
    author_email="",
    packages=find_namespace_packages(include=["src*", "config*", "api*", "scripts*"]),
    python_requires=">=3.11",
    install_requires=[
        "python-dotenv>=1.0.0",
        "fastapi>=0.110.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "uvicorn>=0.27.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.26.0",
            "black>=24.1.0",
            "ruff>=0.2.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "dms-db=scripts.manage_db:main",
        ],
    },
)
