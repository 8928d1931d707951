from setuptools import setup, find_packages

setup(
    name="compliance-framework-service",
    version="1.0.0",
    packages=find_packages(include=["compliance_service", "compliance_service.*"]),
    package_data={"compliance_service.app": ["templates/*.json"]},
    install_requires=[
        "fastapi",
        "uvicorn",
        "sqlalchemy>=2.0",
        "pydantic>=2.0",
        "pydantic-settings",
        "python-dotenv",
        "python-multipart",
        "openpyxl",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    python_requires=">=3.8",
)
