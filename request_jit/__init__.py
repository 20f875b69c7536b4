"""Request just-in-time network access to an Azure virtual machine."""

__version__ = "0.1.0"
