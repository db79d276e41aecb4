from setuptools import setup, find_packages

setup(
    name="statement_ledger",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pandas",
        "numpy",
        "openpyxl",
        "xlrd",
        "pdfplumber",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-dependency",
        ],
    },
    entry_points={
        "console_scripts": [
            "statement-ledger=statement_ledger.ledger:main",
        ],
    },
    description="Builds a deduplicated ledger with balance checks from heterogeneous bank statements",
    python_requires=">=3.8",
)
