[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mvsimage"
version = "0.1.0"
description = "Calibrated photographs for multi-view stereo: cameras, image pyramids, masks, edges and texture sampling"
requires-python = ">=3.10"
keywords = ["multi-view stereo", "camera", "projection", "image pyramid", "photo-consistency"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mvsimage"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
