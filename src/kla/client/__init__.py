"""HTTP execution for kla.

:func:`execute` sends one :class:`~kla.request.RequestArgs` and writes the
rendered (or raw) response to its output sink. :func:`build_client` turns
:class:`~kla.models.ClientOptions` into an :class:`httpx.Client`.

Example::

    from kla.client import execute

    execute(args)
"""

from kla.client.executor import execute
from kla.client.transport import build_client

__all__ = ["execute", "build_client"]
