"""
py-heightwarp: density-adaptive coordinate warping and height-field synthesis.
"""

__version__ = "0.1.0"
