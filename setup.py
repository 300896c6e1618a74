from glob import glob

from setuptools import setup, find_packages

package_name = 'auv_helm'

setup(
    name=package_name,
    version='0.1.0',
    packages=find_packages(include=[package_name, f"{package_name}.*"]),
    data_files=[
        ('share/ament_index/resource_index/packages',
         ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        ('share/' + package_name + '/launch', glob('launch/*.launch.py')),
        ('share/' + package_name + '/config', glob('config/*.yaml')),
    ],
    install_requires=['setuptools', 'PyYAML'],
    extras_require={
        'test': ['pytest'],
    },
    tests_require=['pytest'],
    zip_safe=True,
    maintainer='You',
    maintainer_email='you@example.com',
    description='Behavior-arbitrating helm: state machine gated, per-DOF priority merge of behavior proposals',
    license='Apache-2.0',
    entry_points={
        'console_scripts': [
            'helm = auv_helm.node:main',
        ],
    },
)
