"""
hostdeploy - single-host deployment controller for PM2-supervised Node.js apps.

Resolves a project checked out on the host, installs and builds it, replaces
the running PM2 process, verifies it came up healthy and saves the PM2
process list.
"""

__version__ = "0.1.0"
