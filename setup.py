from setuptools import setup, find_packages

setup(
    name="disk-speed-test",
    version="0.1.0",
    description="Sequential write/read speed test for disks, network shares and other mounted storage",
    author="Your Name",
    packages=find_packages(include=["disk_speed_test", "disk_speed_test.*"]),
    entry_points={"console_scripts": ["disk-speed-test=disk_speed_test.cli:main"]},
    install_requires=["matplotlib"],
    extras_require={"test": ["pytest"]},
    python_requires=">=3.8",
    classifiers=["Programming Language :: Python :: 3", "Operating System :: POSIX :: Linux", "License :: OSI Approved :: MIT License", "Development Status :: 4 - Beta"],
    include_package_data=True,
    zip_safe=False,
)
