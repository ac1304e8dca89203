# setup.py
from setuptools import setup, find_packages

setup(
    name="trade_journal",
    version="0.1.0",
    packages=find_packages(include=["journal", "journal.*"]),
    py_modules=["run_journal"],
    install_requires=[
        "pandas",
        "numpy",
        "python-dotenv",
        "supabase",
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "trade-journal=journal.cli:main",
        ],
    },
)
