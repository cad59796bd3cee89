from setuptools import setup, find_packages

setup(
    name="facepulse",
    version="0.1.0",
    description="Contactless webcam heart-rate monitor (rPPG, POS)",
    packages=find_packages(exclude=["tests"]),
    py_modules=["main"],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24",
        "scipy>=1.10",
        "opencv-python>=4.8",
    ],
    extras_require={
        "face": ["dlib>=19.24"],
        "dev": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "facepulse=main:main",
        ]
    },
)
