"""
CLI package for kickwatch.
"""
