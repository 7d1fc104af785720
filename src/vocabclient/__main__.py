"""Allow running as ``python -m vocabclient``."""

from vocabclient.cli import main

if __name__ == "__main__":
    main()
