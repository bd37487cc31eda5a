"""Entry point for Readme Sync.

Usage:
    python -m readme_sync watch ITEM [ITEM ...]   Wait for and record readmes
    python -m readme_sync validate                Check recorded readmes
    python -m readme_sync show ITEM               Print an item's readme
"""

import sys


def main() -> None:
    """Delegate to the headless command line runner."""
    from readme_sync.service import main as service_main

    sys.exit(service_main())


if __name__ == "__main__":
    main()
