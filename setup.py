"""
ScaffoldGen - Schema introspection & template-driven API-definition generator
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="scaffoldgen",
    version="1.0.0",
    author="Diegoproggramer",
    author_email="",
    description="⚡ Generate API-definition files straight from your database schema",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/Diegoproggramer/scaffoldgen",
    packages=find_packages(include=["scaffoldgen", "scaffoldgen.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "Topic :: Database",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: FastAPI",
    ],
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.20.0",
        "sqlalchemy>=2.0.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "jinja2>=3.1.0",
        "psycopg2-binary>=2.9.0",
        "pymysql>=1.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "httpx>=0.24.0",
            "pyyaml>=6.0",
            "black>=23.0",
            "ruff>=0.1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "scaffoldgen=scaffoldgen.cli:cli_main",
        ],
    },
    keywords="database, introspection, generator, api, jinja2, sqlalchemy, postgresql, mysql",
    project_urls={
        "Bug Reports": "https://github.com/Diegoproggramer/scaffoldgen/issues",
        "Source": "https://github.com/Diegoproggramer/scaffoldgen",
    },
)
