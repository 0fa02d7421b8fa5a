"""
Setup script for entalk-decks.

entalk builds conversation question decks for social events. Each venue
gets a fresh, balanced deck: questions are scored on participant feedback
and freshness, picked to cover every category and conversational phase,
seasoned with a few novelty questions, and topped up with AI-generated
questions when the authored pool runs thin.

The 'entalk' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="entalk-decks",
    version="1.0.0",
    description="Question deck generation for conversation events",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["entalk", "entalk.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # AI question generation
        "google-generativeai>=0.3.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "entalk=entalk.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    keywords="events conversation questions deck cli",
)
