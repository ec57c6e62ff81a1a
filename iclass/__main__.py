"""
Package entry point.

Allows running the application via:

    python -m iclass

This simply forwards execution to iclass.cli.main().
"""

from iclass.cli import main

if __name__ == "__main__":
    main()
