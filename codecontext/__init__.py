"""CodeContext - static characterization of source-code snippets"""

__version__ = "1.0.0"
