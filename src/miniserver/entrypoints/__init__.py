"""Entrypoints (inbound adapters) for miniserver.

Expose the launcher to the outside world. Parse inputs, call into
:mod:`miniserver.launcher`, and present results and failures.
"""
