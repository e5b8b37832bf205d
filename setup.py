from setuptools import setup, find_packages
from pathlib import Path

# Read the README file for the long description
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

setup(
    name="bookcat",
    version="0.1.0",
    description="Personal book catalogs with CSV/HTML import and export",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "bookcat=bookcat.cli:app"
        ],
    },
    install_requires=[
        "typer>=0.9.0",
        "rich>=13.0.0",
        "jinja2>=3.0.0",
        "beautifulsoup4>=4.12.0",
        "sqlalchemy>=2.0.0",
        "aiohttp>=3.8.0",  # Google Books lookups
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "python-multipart>=0.0.6",  # File uploads
        "pydantic>=2.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "httpx>=0.24.0",  # FastAPI TestClient
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
    ],
    python_requires='>=3.9',
    include_package_data=True,
    package_data={
        "bookcat": ["codecs/templates/*.html"],
    },
)
