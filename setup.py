from setuptools import setup, find_packages

setup(
    name="coge",
    version="1.4.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "openai>=1.0.0",
        "python-dotenv>=1.0.0",
        "click>=8.1.0",
        "pydantic>=2.0.0",
        "rich>=13.0.0",
        "pyperclip>=1.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "hypothesis>=6.0.0",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "coge=coge.cli.main:main",
        ]
    },
    description="Turn natural-language instructions into shell commands by racing several AI backends.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    license="MIT",
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Topic :: Utilities",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
