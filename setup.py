"""
Setup file.
"""

import os

from setuptools import setup

URL = "https://github.com/zackees/hbuild"
KEYWORDS = "build c c++ compiler incremental make toolchain multi-language"
HERE = os.path.dirname(os.path.abspath(__file__))



if __name__ == "__main__":
    setup(
        keywords=KEYWORDS,
        url=URL,
        include_package_data=True)
