#!/usr/bin/env python3
"""
Setup script for mailflow.

Install with `pip install .`, or `pip install -e ".[dev]"` for the test
suite and the live browser scenarios. Browsers are installed separately
with `playwright install chromium`.
"""

import re
import sys
from pathlib import Path

if sys.version_info < (3, 11):
    sys.exit("Error: mailflow requires Python 3.11 or higher.")

try:
    from setuptools import find_packages, setup
except ImportError:
    sys.exit("Error: setuptools is required. Install it with: pip install setuptools")

# Try to read version from __version__.py for consistency
try:
    version_file = Path(__file__).parent / "src" / "mailflow" / "__version__.py"
    version_content = version_file.read_text(encoding="utf-8")
    version_match = re.search(r'^__version__\s*=\s*["\']([^"\']+)["\']', version_content, re.M)
    version = version_match.group(1) if version_match else "0.1.0"
except OSError:
    version = "0.1.0"

# Read long description from README if available
readme_path = Path(__file__).parent / "README.md"
if readme_path.exists():
    long_description = readme_path.read_text(encoding="utf-8")
    long_description_content_type = "text/markdown"
else:
    long_description = "Browser-driven webmail scenarios with Playwright"
    long_description_content_type = "text/plain"

# Core dependencies
install_requires = [
    "playwright>=1.40.0",
    "pydantic>=2.5.0",
    "pydantic-settings>=2.1.0",
]

# Development dependencies
extras_require = {
    "dev": [
        "pytest>=7.4.0",
        "pytest-playwright>=0.4.0",
        "pytest-asyncio>=0.24.0",
        "pytest-cov>=4.1.0",
        "black>=23.0.0",
        "flake8>=6.1.0",
        "mypy>=1.7.0",
    ],
}
extras_require["test"] = extras_require["dev"][:4]

setup(
    name="mailflow",
    version=version,
    description="Browser-driven webmail scenarios with Playwright",
    long_description=long_description,
    long_description_content_type=long_description_content_type,
    author="mailflow Team",
    license="MIT",
    python_requires=">=3.11",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "mailflow=mailflow.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Testing",
        "Topic :: Communications :: Email",
    ],
    keywords=["email", "playwright", "e2e", "testing", "automation"],
)
