from setuptools import setup, find_packages

setup(
    name='saferw',
    version='0.1.0',
    author='Thomas Hansen',
    author_email='thomas.hansen@queensu.ca',
    description='Advisory sentinel-file locking for safe reads and writes of shared files.',
    packages=find_packages(include=['saferw', 'saferw.*']),
    include_package_data=True,
    install_requires=[
        'pydantic>=2',
        'platformdirs',
        'click',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    entry_points={
        "console_scripts": [
            # 'saferw' command will call the main() group in saferw/cli.py
            "saferw = saferw.cli:main",
        ],
    },
    classifiers=[
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.11',
)
