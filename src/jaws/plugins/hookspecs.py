"""Pluggy hook specifications for jaws plugin packages.

Third-party packages expose plugin factories by registering an object under
the ``jaws`` entry-point group that implements :meth:`JawsSpec.jaws_plugin_factories`::

    from jaws.plugins.hookspecs import hookimpl

    class MyPlugins:
        @hookimpl
        def jaws_plugin_factories(self):
            return {"slack-notify": slack_notify_factory}
"""

from __future__ import annotations

from typing import Any

import pluggy

hookspec = pluggy.HookspecMarker("jaws")
hookimpl = pluggy.HookimplMarker("jaws")


class JawsSpec:
    """Hook specifications for jaws plugin packages."""

    @hookspec
    def jaws_plugin_factories(self) -> dict[str, Any]:
        """Provide named plugin factories.

        Returns:
            Dict mapping plugin name (the key used under ``[plugins.<name>]``
            in jaws.toml) to a factory. A factory is called once with the
            plugin's config and must return ``register(actions, hooks)``.
        """
