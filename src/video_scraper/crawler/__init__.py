"""
Crawler Package - Rendering sessions and candidate post-processing
"""
