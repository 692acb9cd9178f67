"""
paramfs — a filesystem over the parameter store.

Upload directory trees into AWS SSM Parameter Store, pull them back down,
copy subtrees between prefixes, export parameters as env files and feed
stored secrets into docker compose.
"""

import os

__version__ = "0.1.0"
__author__ = "paramfs contributors"

PARAMFS_HOME = os.environ.get("PARAMFS_HOME", "~/.paramfs")
