"""
parmove
=======

Sorts the files of a directory into category folders by extension,
moving or copying them in parallel.

Features:
- Default categories (Images, Videos, Documents, Audio, Archives) and
  user-defined categories from a TOML file
- Extension blacklist, depth-limited traversal, extensionless-file policy
- Collision-free destinations under concurrent workers
- Desktop notification and HTML index after a run
"""

__version__ = "0.1.0"
