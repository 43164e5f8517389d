"""Setup script for acl-audit."""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()
    # Filter out comments and empty lines
    requirements = [
        line.strip() for line in requirements
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="acl-audit",
    version="0.1.0",
    description="Azure DevOps Git repository permission auditing tool",
    author="acl-audit maintainers",
    packages=find_packages(include=["acl_audit", "acl_audit.*"]),
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "acl-audit=acl_audit.cli.main:app",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
