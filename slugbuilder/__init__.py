"""Slugbuilder - build deployable slugs from git repositories with buildpacks."""

__version__ = "0.1.0"
