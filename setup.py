"""
Setup script for vatcompletor

Allows editable install for integration in shop plugins and other projects:
    pip install -e .
"""

from setuptools import setup, find_packages

# Use include pattern to ensure all subpackages (like strategies) are included
setup(
    name="vatcompletor",
    version="0.1.0",
    packages=find_packages(include=["vatcompletor", "vatcompletor.*"]),
    install_requires=[
        "pydantic>=2.0.0",
        "PyYAML>=6.0.0",
        "python-dotenv>=1.0.0",
        "typer>=0.9.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "vatcompletor=vatcompletor.cli.main:app",
        ],
    },
    author="vatcompletor Team",
    description="Completes invoice line vat rates by trying vat divide strategies",
    include_package_data=True,
)
