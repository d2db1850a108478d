"""
Utility modules for logging and gateway retries.
"""
