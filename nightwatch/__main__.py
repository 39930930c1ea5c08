"""
Entry point for ``python -m nightwatch``.
"""

from nightwatch.cli import main

if __name__ == '__main__':
    main()
