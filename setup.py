"""
Setup script for user-service
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="user-service",
    version="1.0.0",
    description="Users CRUD microservice with MongoDB storage and Redis Streams change events",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.29.0",
        "pydantic>=2.5.0",
        "PyYAML>=6.0",
        "redis[hiredis]>=5.0.1",
        "pymongo>=4.9.0",
        "email-validator>=2.2.0",
        "prometheus-client>=0.19.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.25.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "user-service=user_service.app:run",
        ]
    },
    include_package_data=True,
    zip_safe=False,
)
