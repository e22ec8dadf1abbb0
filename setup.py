"""
Setup script for daypath-mentor.

Daypath Mentor is the tutoring engine behind a day-by-day learning plan.
It serves three roles:

1. Scope gate - answers only questions within the active day's topic
2. Day knowledge base - grows from the mentor's answers, resets every day
3. Curriculum engine - skip/leave/complete transitions with adaptive regeneration

Run the API with `daypath-mentor` or `python main.py`.
"""

from setuptools import find_packages, setup

setup(
    name="daypath-mentor",
    version="0.1.0",
    description="Scope-restricted adaptive tutoring engine for daily learning plans",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Daypath",
    packages=find_packages(include=["src", "src.*"]),
    py_modules=["config", "main"],
    python_requires=">=3.10",
    install_requires=[
        # API
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        # Embeddings
        "numpy>=1.24.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
        "local-ai": [
            "sentence-transformers>=2.2.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "daypath-mentor=main:run",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Framework :: FastAPI",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning tutoring llm embeddings education",
)
