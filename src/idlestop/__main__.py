"""Allow running as ``python -m idlestop``."""

from idlestop.cli import main

if __name__ == "__main__":
    main()
