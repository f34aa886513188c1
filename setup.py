"""
Setup script for the Insolvenzpanel Admin
"""
from setuptools import setup

setup(
    name="insolvenzpanel-admin",
    version="1.0.0",
    description="Admin panel for insolvency vehicle sales: templates, contracts and invoices",
    author="Your Firm",
    python_requires=">=3.10",
    py_modules=[
        "config",
        "entities",
        "formatters",
        "template_data",
        "live_preview",
        "print_layout",
        "templates",
        "database",
        "orders",
        "docmosis_client",
        "documents",
        "template_assistant",
        "api",
        "agent",
    ],
    install_requires=[
        "httpx>=0.25.0",
        "python-dateutil>=2.8.2",
        "jinja2>=3.1.2",
        "beautifulsoup4>=4.12.0",
        "click>=8.1.0",
        "rich>=13.0.0",
        "python-dotenv>=1.0.0",
        "anthropic>=0.40.0",
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "insolvenzpanel=agent:main",
        ],
    },
)
