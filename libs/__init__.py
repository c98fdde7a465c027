"""MouseLaw shared libraries.

This package contains reusable components:
- common: Configuration and logging setup
"""
