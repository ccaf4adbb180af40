"""Run the pgshelf CLI: python -m pgshelf"""

import sys

from pgshelf.cli import main

if __name__ == "__main__":
    sys.exit(main())
