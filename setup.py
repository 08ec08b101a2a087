"""Install arena players package."""

from setuptools import setup, find_packages

setup(
    name='arena-players',
    version='0.1.0',
    packages=find_packages(exclude=['*test*']),
    install_requires=[
        "sqlalchemy>=2.0",
        "flask>=2.2,<2.3",
        "werkzeug>=2.2,<2.3",
        "jinja2<3.1",
        "flask-sqlalchemy>=3.0,<3.1",
        "pytz",
        "arxiv-base",
    ],
    extras_require={
        'mysql': ["mysqlclient"],
        'test': ["pytest", "hypothesis", "mimesis"],
    },
    zip_safe=False
)
