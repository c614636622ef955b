from setuptools import find_packages, setup

with open('requirements.txt', 'r') as file:
    requirements = [line.strip() for line in file if line.strip() and not line.startswith('#')]

extra_require = {
    'test': [
        'pytest'
    ]
}

packages = find_packages(include=['switchback', 'switchback.*'])

setup(
    name='switchback',
    version='0.1.0',
    description='A small, blocking server-side websocket implementation',
    packages=packages,
    python_requires='>=3.8.0',
    install_requires=requirements,
    extras_require=extra_require,
    entry_points={
        'console_scripts': [
            'switchback=switchback.__main__:main'
        ]
    },
)
