"""Install the cardgate session and access service."""

from setuptools import setup, find_packages

setup(
    name='cardgate',
    version='0.3.0',
    packages=find_packages(exclude=['*test*']),
    include_package_data=True,
    install_requires=[
        "flask",
        "werkzeug",
        "wtforms",
        "sqlalchemy>=1.4",
        "python-dateutil",
        "pytz",
        "pyjwt>=2",
        "redis",
        "fakeredis",
        "retry",
        "click",
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis",
            "pytest-mock",
        ],
    },
    entry_points={
        'console_scripts': [
            'cardgate-create-account=cardgate.create_account:create_account',
        ],
    },
    zip_safe=False
)
