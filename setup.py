from setuptools import setup, find_packages

setup(
    name="kids-catalog",
    version="0.1.0",
    description="Content catalog service for a children's audio app: bilingual content, ranking, categories and favorites",
    author="Matt Skillman",
    packages=find_packages(include=["kids_catalog", "kids_catalog.*"]),
    python_requires=">=3.10",
    install_requires=[
        "Flask>=3.0.0",
        "Flask-SQLAlchemy>=3.1.0",
        "SQLAlchemy>=2.0.0",
        "Flask-JWT-Extended>=4.6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "pylint>=2.17.0",
        ]
    },
)
