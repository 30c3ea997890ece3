from setuptools import setup, find_packages

setup(
    name="wro-planner",
    version="1.0.0",
    description="Drawn-path mission planner for WRO robots: rotate/move action generation, collision checks and playback preview.",
    packages=find_packages(include=["planner", "planner.*"]),
    py_modules=["main", "doctor"],
    include_package_data=True,
    package_data={"": ["*.json"]},
    install_requires=[
        "pygame>=2.1.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.8",
)
