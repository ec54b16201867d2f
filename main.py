"""
Firebase Functions entry point; the deployer loads functions from main.py at the source root
"""

from greensprint.main import api  # noqa: F401
