from setuptools import find_packages, setup

setup(
    name="sofafeed",
    version="0.1.0",
    description="Typed client for the SOFA macOS and iOS software update feeds",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "urllib3",
        "PyYAML",
        "rich",
    ],
    extras_require={
        "test": [
            "pytest<9.1",
            "pytest-mock",
        ],
    },
    # Include other metadata as needed
)
