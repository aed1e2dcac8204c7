"""
wgslbuild: Build-time compilation pipeline for WESL/WGSL shader trees.

Walks a shader directory, compiles every shader into a flat artifact
directory, and lets extensions post-process each artifact in a fixed order.
"""

__version__ = "0.2.0"
