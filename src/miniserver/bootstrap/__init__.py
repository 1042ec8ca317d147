"""Bootstrap synthesis for miniserver.

Renders the entry-point program that, when run by the interpreter, loads the
services configuration, links the compiled handlers and starts the server.

Public surface:
- :class:`BootstrapParams` - the three run-specific substitution values.
- :func:`render_bootstrap` / :func:`write_bootstrap` - render and persist.
- :func:`synthesize_bootstrap` - both, in that order.
"""

from .template import (
    BootstrapParams,
    render_bootstrap,
    synthesize_bootstrap,
    write_bootstrap,
)

__all__ = [
    "BootstrapParams",
    "render_bootstrap",
    "synthesize_bootstrap",
    "write_bootstrap",
]
