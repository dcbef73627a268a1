"""GitHub Star 多视角分类工具"""

__version__ = "0.1.0"
