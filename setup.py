#!/usr/bin/env python3
"""
setup.py compatibility wrapper for tools that still invoke setup.py directly.

The project is configured in pyproject.toml with hatchling as the build
backend. For normal installation, use:
    pip install .
"""

from setuptools import setup

setup()
