from setuptools import setup, find_packages

setup(
    name="codecontext",
    version="1.0.0",
    description="Static characterization of source-code snippets for review and translation",
    author="Kalmantic Applied AI Lab",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml>=6.0",
        "jsonschema>=4.20.0",
        "networkx>=3.2.1",
        "click>=8.1.7",
        "tqdm>=4.66.1",
        "tree-sitter>=0.23.0",
        "tree-sitter-language-pack>=0.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "codecontext=codecontext.cli:main",
        ],
    },
    python_requires=">=3.9",
)
