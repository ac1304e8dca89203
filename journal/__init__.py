# journal/__init__.py
"""Trading journal: fill reconstruction, daily logs and performance statistics."""

__version__ = '0.1.0'
