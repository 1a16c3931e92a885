from setuptools import find_packages, setup

setup(
    name="reports-archiver",
    version="0.1.0",
    packages=find_packages(
        include=[
            "reports_common",
            "reports_common.*",
            "reports_persistence",
            "reports_persistence.*",
            "reports_client",
            "reports_client.*",
            "reports_archiver",
            "reports_archiver.*",
            "reports_server",
            "reports_server.*",
            "reports_admin",
            "reports_admin.*",
        ]
    ),
    install_requires=[
        "requests>=2.31.0",
        "fastapi>=0.104.0",
        "uvicorn>=0.24.0",
        "aiosqlite>=0.19.0",
        "click>=8.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.25.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "reports-archiver=reports_archiver.__main__:main",
            "reports-admin=reports_admin.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
