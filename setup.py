"""setuptools setup for ChunkPomo.

Install for development:
    pip install -e ".[test]"

Build a macOS .app bundle:
    pip install py2app
    python setup.py py2app
"""

import sys

from setuptools import setup, find_packages

APP = ["main.py"]
OPTIONS = {
    "argv_emulation": False,
    "plist": {
        "CFBundleName": "ChunkPomo",
        "CFBundleDisplayName": "ChunkPomo",
        "CFBundleIdentifier": "com.chunkpomo.app",
        "CFBundleVersion": "0.1.0",
        "CFBundleShortVersionString": "0.1.0",
        "LSMinimumSystemVersion": "13.0",
    },
}

extra = {}
if "py2app" in sys.argv:
    extra = {
        "app": APP,
        "options": {"py2app": OPTIONS},
        "setup_requires": ["py2app"],
    }

setup(
    name="ChunkPomo",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "PyQt6>=6.4",
        "SQLAlchemy>=2.0",
    ],
    extras_require={"test": ["pytest>=7"]},
    entry_points={"console_scripts": ["chunkpomo=chunkpomo.__main__:main"]},
    **extra,
)
