"""
Match engine services
"""
