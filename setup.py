from setuptools import find_packages, setup

setup(
    name="depfetch",
    version="0.1.0",
    description="Retrieve and extract target-specific prebuilt dependency archives",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={"depfetch": ["data/*.yaml"]},
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "PyYAML",
        "urllib3",
        "platformdirs",
        "rich",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "depfetch=depfetch.cli:main",
        ],
    },
)
