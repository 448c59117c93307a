"""
BugSage - Log Analysis API Package
"""
