from setuptools import setup, find_packages

setup(
    name="agentgraph",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src", exclude=["tests", "tests.*"]),
    install_requires=[
        "pydantic>=2,<2.12",
        "mirascope[openai]>=1,<2",
        "tenacity",
        "httpx",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    python_requires=">=3.9",
    description="typed state-machine graphs for orchestrating LLM agent workflows",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
)
