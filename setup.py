from setuptools import setup, find_packages

setup(
    name='gap-pad',
    version='0.1.0',
    description='Terminal text editor built on a gap buffer with word, line and selection editing',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'toml>=0.10.2',
        'wcwidth>=0.2.6',
        'chardet>=5.0.0',
        'pyperclip>=1.8.2',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'gap-pad = gap_pad.controller:main'
        ]
    },
    include_package_data=True,
    package_data={'gap_pad': ['config.toml']},
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Programming Language :: Python :: 3.11',
    ],
    python_requires='>=3.11',
    license='GPLv3',
)
