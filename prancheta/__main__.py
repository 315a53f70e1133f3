"""Entry point for running the board tools as a module: python -m prancheta"""

import sys
from .export import main

if __name__ == "__main__":
    sys.exit(main())
