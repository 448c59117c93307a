"""
BugSage - Log Analysis Service
==============================

Classifies pasted error logs, asks a language model for a root-cause
analysis and keeps each user's analysis history.
"""
