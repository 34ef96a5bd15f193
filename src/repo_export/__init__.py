"""Export a filtered selection of repository files as one Markdown or XML document."""

__version__ = "0.1.0"
