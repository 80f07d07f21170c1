"""Built-in CLI commands registered on the root app by :mod:`apigen.app`."""
