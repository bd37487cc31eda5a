"""Readme Sync — keeps recorded readme attributes in step with disk.

Watches an item's install directory for the readme text file dropped
by an external installer, publishes its content to the metadata store,
and validates recorded values against what is on disk.
"""

__version__ = "1.0.0"
__app_name__ = "Readme Sync"
