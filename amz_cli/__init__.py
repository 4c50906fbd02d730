"""
amz-cli: a command-line downloader for Amazon MP3 store purchase files.
"""

__version__ = "0.6.0"
