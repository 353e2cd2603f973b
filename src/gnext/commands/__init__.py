"""Built-in CLI sub-commands for gnext.

Each module exports a plain callback function registered directly on the
root app in :mod:`gnext.app`:

* :mod:`~gnext.commands.build` -- build, package and optionally install.
* :mod:`~gnext.commands.bump` -- bump versions, optionally tag a release.
* :mod:`~gnext.commands.publish` -- upload to extensions.gnome.org.
* :mod:`~gnext.commands.logs` -- follow GNOME Shell logs.
* :mod:`~gnext.commands.dev` -- run a nested GNOME Shell.
"""
