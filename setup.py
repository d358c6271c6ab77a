from setuptools import setup, find_packages

setup(
    name="studyquiz-backend",
    version="0.1.0",
    description="Performance tracking and weakness detection for StudyQuiz",
    packages=find_packages(include=["studyquiz", "studyquiz.*"]),
    package_data={
        "studyquiz": [
            "alembic/env.py",
            "alembic/script.py.mako",
            "alembic/versions/*.py",
        ],
    },
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.22.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "aiosqlite>=0.19.0",
        "alembic>=1.11.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.24.0",
        ],
    },
    python_requires=">=3.9",
)
