# journal/analytics/__init__.py
"""Daily aggregation and grouped performance statistics."""
