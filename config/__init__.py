"""Top-level package for Django configuration.

This package contains settings modules for different environments and
the URL and WSGI entry points of the chalet reservation project.
"""
