"""hostm: manage domain mappings in the hosts file."""

__version__ = "0.1.0"
