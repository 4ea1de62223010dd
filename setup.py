from setuptools import find_packages, setup

setup(
    name="polymer-expr",
    version="0.3.0",
    description="Rewrite complex Polymer data-binding expressions into computed bindings",
    python_requires=">=3.9",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "click>=8.1",
        "rich>=13.0",
        "rich-click>=1.7",
        "tree-sitter>=0.23",
        "tree-sitter-javascript>=0.23",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "polymer-expr=polymer_expr.cli.main:cli",
        ],
    },
    zip_safe=False,
)
