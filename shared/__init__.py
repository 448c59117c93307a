"""
BugSage - Shared Library
========================

Constants and utilities shared by the BugSage services.
"""

__version__ = "0.1.0"
__author__ = "BugSage Team"
