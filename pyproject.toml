[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "poseekf"
version = "0.1.0"
description = "Square-root extended Kalman filter for planar vehicle velocity and pose estimation"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["kalman", "ekf", "pose-estimation", "vehicle", "single-track", "square-root-filter"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
    "numpy",
]

[project.scripts]
poseekf = "poseekf.estimator:main"

[tool.hatch.build.targets.wheel]
packages = ["poseekf"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
