"""Built-in CLI sub-commands for vopex.

* :mod:`~vopex.commands.init` -- create a profile for a CRM deployment.
* :mod:`~vopex.commands.auth` -- sign in, sign out, inspect the session.
* :mod:`~vopex.commands.leads`, :mod:`~vopex.commands.opportunities`,
  :mod:`~vopex.commands.campaigns` -- work with CRM records.
* :mod:`~vopex.commands.cache` -- inspect and clear the client cache.
* :mod:`~vopex.commands.flags` -- sync and evaluate feature flags.
* :mod:`~vopex.commands.config` -- view and modify global settings.
* :mod:`~vopex.commands.watch` -- run the periodic background jobs.

Multi-command groups export a :class:`typer.Typer`; single commands export
a plain callback registered on the root app.
"""
