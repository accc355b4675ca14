"""
Core resolution, caching and transform machinery.
"""
