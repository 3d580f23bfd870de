"""
Shared helpers: path sanitization, input validation, subprocess execution,
time bounds and display formatting.
"""
