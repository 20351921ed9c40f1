"""
Setup script for embedmath package.
"""

from setuptools import setup, find_packages

setup(
    name="embedmath",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        # Core numerical dependencies
        "numpy>=1.20.0",
        "pandas>=1.3.0",
        "scipy>=1.7.0",
        
        # Parameter validation
        "pydantic>=2.0.0",
        
        # Utilities
        "pyyaml>=6.0.0",
    ],
    extras_require={
        # Testing
        "test": [
            "pytest>=6.0.0",
        ],
    },
    author="Charting Tool Team",
    description="Dimensionality reduction backbone (PCA, t-SNE, UMAP) for the charting tool",
    keywords="pca, tsne, umap, dimensionality reduction, embedding",
    python_requires=">=3.8",
)
