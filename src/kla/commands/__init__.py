"""Sub-commands of the kla CLI other than the request itself.

* :mod:`~kla.commands.environments` -- list the configured environment
  aliases (``kla environments`` / ``kla envs``).

The request command lives in :mod:`kla.app`, which dispatches to these
sub-applications when the first argument names one of them.
"""
