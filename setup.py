"""Grow DigitalOcean volumes and their filesystems when free space runs low."""

from os import path

from setuptools import setup

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, "README.rst"), encoding="utf-8") as f:
    long_description = f.read()

test_deps = [
    "responses",
    "pytest>=3",
    "pytest-mock",
    "pytest-structlog",
    "pytest-cov",
]

setup(
    name="do-volume-autoresize",
    version="1.0",
    description=__doc__,
    long_description=long_description,
    long_description_content_type="text/x-rst",
    license="ZPL",
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Environment :: Console",
        "License :: OSI Approved :: Zope Public License",
        "Programming Language :: Python :: 3.10",
        "Topic :: System :: Systems Administration",
    ],
    packages=[
        "autoresize",
    ],
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "rich",
        "stamina",
        "structlog",
        "typer",
    ],
    zip_safe=False,
    extras_require={"test": test_deps},
    entry_points={
        "console_scripts": [
            "do-volume-autoresize=autoresize.cli:app",
        ],
    },
)
