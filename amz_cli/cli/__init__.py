"""
Command-Line Interface.

The Typer application, the Rich progress display, and the console
formatters for manifest information and session summaries.
"""
