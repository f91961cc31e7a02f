from setuptools import setup, find_packages

setup(
    name="wpactrl",
    version="0.1.0",
    description="Low-level client for the wpa_supplicant / hostapd control interface",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
)
