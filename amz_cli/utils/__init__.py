"""
Utilities: file name templates, output path handling, environment
discovery, and human-readable formatting helpers.
"""
