"""ytchat - YouTube live chat client."""

__version__ = "0.1.0"
