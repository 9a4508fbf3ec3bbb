"""
Work type exporter package setup.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="workitem-exporter",
    version="1.0.0",
    description="Export work type configuration packages, unpack them safely and reorganize them",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["exporter", "exporter.*"], exclude=["exporter.tests", "exporter.tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Framework :: AsyncIO",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.23",
            "pytest-cov>=4.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "exporter=exporter.cli.export_cli:main",
        ],
    },
)
