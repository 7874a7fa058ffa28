"""Turn a merged pull request into a structured release note."""

__version__ = "0.1.0"
