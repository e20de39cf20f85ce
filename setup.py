"""Setup configuration for Govcord Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="govcord",
    version="0.0.1",
    description="A Discord bot for community self-governance: elections, reelection votes and impeachments",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord",
        "aiosqlite",
        "PyYAML",
        "python-dotenv",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "govcord=govcord.main:main",
        ],
    },
)
