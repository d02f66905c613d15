# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Entry point for running the resolver as a module: python -m modresolve"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
