from setuptools import setup, find_packages

setup(
    name="secscan",
    version="1.0.0",
    description="SECSCAN: network, web, source code and configuration security scanner",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "secscan": ["default_config.yaml"],
    },
    install_requires=[
        "requests",
        "pyyaml",
        "colorama",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "secscan=secscan.cli:main",
        ],
    },
    python_requires=">=3.8",
)
