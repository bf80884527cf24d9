from setuptools import setup, find_packages

setup(
    name="supportdesk",
    version="0.1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main"],
    include_package_data=True,
    package_data={"supportdesk": ["database/migrations/*.sql"]},
    python_requires=">=3.10",
    install_requires=[
        "flask",
        "flask-cors",
        "python-dotenv",
        "supabase>=2.10",
        "postgrest",
        "httpx",
        "PyJWT",
        "tabulate",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "supportdesk=supportdesk.cli:main",
        ],
    },
)
