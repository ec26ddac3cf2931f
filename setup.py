from setuptools import setup, find_packages


setup(
    name="jwpub",
    version="0.1",
    packages=find_packages(include=["jwpub", "jwpub.*"]),
    description="Encoder for .jwpub publication containers: keyed content encryption, SQLite metadata and manifest packaging.",
    python_requires=">=3.8",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    entry_points={
        "console_scripts": [
            "jwpub=jwpub.cli:main",
        ]
    },
)
