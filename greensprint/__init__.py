"""
Green Sprint backend - tree planting community platform
"""

__version__ = '1.0.0'
