"""watchinstall: reconcile installed modules with a repository's watch folders."""

__version__ = "0.1.0"
