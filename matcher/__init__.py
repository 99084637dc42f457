"""
Creator/Brand Match Engine
"""
