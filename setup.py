from setuptools import setup, find_packages


setup(
    name="ugrpack",
    version="1.0.0",
    packages=find_packages(include=["ugrpack", "ugrpack.*"]),
    python_requires=">=3.8",
    description="Pack tagged byte blobs into one contiguous archive with O(1) lookup by tag.",
    install_requires=[],
    entry_points={
        "console_scripts": [
            "ugrpack=ugrpack.cli:main",
        ]
    },
)
