from setuptools import setup, find_namespace_packages

setup(
    name="tagged-file-store",
    version="0.1",
    packages=find_namespace_packages(include=["common*", "services*", "clients*"]),
    include_package_data=True,
    install_requires=[
        "fastapi",
        "python-multipart",
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "alembic",
        "uvicorn",
        "minio",
        "requests",
        "pydantic>=2",
        "pydantic-settings",
        "python-dotenv",
        "celery",
        "redis",
        "Pillow>=9.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "httpx",
        ],
    },
)
