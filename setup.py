"""Setup configuration for Fleet Console package."""

from setuptools import setup, find_packages

setup(
    name="fleet-console",
    version="1.0.0",
    description="Filtered retrieval and bulk CSV export for the fleet-monitoring console",
    author="",
    author_email="",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"fleet_console.config": ["endpoints.yaml"]},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "pandas>=2.1.0",
        "httpx>=0.26.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
        "tqdm>=4.66.0",
        "tenacity>=8.2.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.1.0",
            "black>=24.1.0",
            "ruff>=0.2.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fleet-export=fleet_console.cli:main",
        ],
    },
)
