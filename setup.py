"""Setup script for reprogistry."""

from pathlib import Path

from setuptools import find_packages, setup


def read_version():
    """Read the fallback version string without importing the package."""
    init = Path(__file__).parent / "reprogistry" / "__init__.py"
    for line in init.read_text().splitlines():
        if line.strip().startswith("__version__ = \""):
            return line.split('"')[1]
    return "0.0.0"


setup(
    name="reprogistry",
    version=read_version(),
    description="Rebuild published npm packages from source and score how closely they match",
    python_requires=">=3.11.4",
    packages=find_packages(include=["reprogistry", "reprogistry.*"]),
    install_requires=[
        "blake3>=0.3",
        "click>=8.1",
        "dependency-injector>=4.41",
        "httpx>=0.25",
        "node-semver>=0.9",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "tomli>=2.0; python_version < '3.11'",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "reprogistry=reprogistry.__main__:main",
        ],
    },
)
