"""
filegate HTTP API
"""
