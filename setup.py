from setuptools import setup, find_packages

setup(
    name="topicgraph",
    version="0.1.0",
    description="Incremental topic graph builder for live conversation transcripts",
    packages=find_packages(include=["topicgraph", "topicgraph.*"], exclude=["topicgraph.tests", "topicgraph.tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "setuptools",
        "pydantic>=2.0",
        "python-dotenv",
        "httpx",
        "fastapi",
        "uvicorn",
        "google-genai",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "topicgraph-server=topicgraph.server:main",
        ],
    },
)
