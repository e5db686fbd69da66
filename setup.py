#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for PackDiff

This file is kept for legacy compatibility and pip editable installs.
The main package configuration is in pyproject.toml.
"""

from setuptools import setup

# Keep in sync with packdiff.__version__
VERSION = "1.0.0"

# Main setup configuration is in pyproject.toml
setup(
    version=VERSION,
    # All other configuration comes from pyproject.toml
)
