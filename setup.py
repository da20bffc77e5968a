from setuptools import setup, find_packages

setup(
    name='data-store-blob',
    version='0.1.0',
    description='Key-value datastore backed by cloud object storage buckets',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    py_modules=['config'],
    install_requires=[
        'pydantic>=2.0',
        'pydantic-settings>=2.0',
        'python-dotenv',
        'aiofiles>=23.1',
        'azure-core',
        'azure-storage-blob>=12.15',
        'azure-identity',
        'aiohttp',
        'boto3',
        'botocore',
        'google-cloud-storage',
        'google-api-core',
        'google-auth',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio>=0.21',
        ],
    },
    python_requires='>=3.9',
)
