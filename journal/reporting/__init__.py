# journal/reporting/__init__.py
"""Daily log documents and console formatting."""
