from setuptools import setup, find_packages


setup(
    name='imresample',
    version='0.1a',
    packages=find_packages(include=['imresample', 'imresample.*']),
    license='MIT',
    description='Multilinear point sampling and parallel resampling of '
                '2D/3D images with a physical geometry',
    python_requires='>=3.8',
    install_requires=['nibabel', 'numpy'],
    extras_require={
        'test': ['pytest', 'scipy'],
    },
)
