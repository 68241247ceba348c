from __future__ import annotations

from setuptools import find_packages, setup

from config.version import PROJECT_VERSION, PYTHON_REQUIRES_SPECIFIER

if __name__ == "__main__":
    setup(
        name="magis",
        version=PROJECT_VERSION,
        python_requires=PYTHON_REQUIRES_SPECIFIER,
        packages=find_packages(include=["magis", "magis.*", "config", "src", "src.*"]),
        install_requires=[
            "pydantic>=2",
            "python-dotenv",
            "tomli; python_version < '3.11'",
            "tomli-w",
            "loguru",
            "SQLAlchemy>=1.4",
            "python-dateutil",
        ],
        extras_require={
            "test": ["pytest", "hypothesis"],
        },
    )
