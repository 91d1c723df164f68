"""
Package entry point.

Allows running the application via:

    python -m coursefilter

This simply forwards execution to coursefilter.cli.main().
"""

from coursefilter.cli import main

if __name__ == "__main__":
    main()
