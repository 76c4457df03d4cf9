import sys

from funding_rounds.cli import main

if __name__ == "__main__":
    sys.exit(main())
