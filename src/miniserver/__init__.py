"""miniserver

A launcher for handler-based services. It compiles a project's sources into a
build directory, generates a bootstrap entry point that wires configuration,
linked handlers and the server together, and runs that entry point as a
supervised child process.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
