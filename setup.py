#!/usr/bin/env python3
"""
Setup configuration for audiowarden
Skips Spotify songs you never want to hear again
"""

from setuptools import setup, find_packages

# Read README for long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

# Core requirements (always installed)
core_requirements = [
    "spotipy>=2.23.0",
    "requests>=2.31.0",
    "rich-click>=1.7.0",
    "pyyaml>=6.0.1",
    "tqdm>=4.66.1",
    "jeepney>=0.8.0",
]

setup(
    name="audiowarden",
    version="0.3.0",
    author="audiowarden Team",
    description="Skip Spotify songs listed in a local deny-list or in marked Spotify playlists",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["audiowarden", "audiowarden.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: No Input/Output (Daemon)",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Players",
    ],
    python_requires=">=3.10",
    install_requires=core_requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.3",
        ],
    },
    entry_points={
        "console_scripts": [
            "audiowarden=audiowarden.cli:main",
        ],
    },
    keywords="spotify mpris dbus skip blocklist daemon",
)
