from setuptools import setup, find_packages


setup(
    name="tinytar",
    version="0.1",
    packages=find_packages(include=["tinytar", "tinytar.*"]),
    description="A tiny USTAR archiver for flat collections of regular files, with safe in-place append.",
    author="vercingetorx",
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "tinytar=tinytar.cli:main",
        ]
    },
)
