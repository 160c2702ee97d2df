#!/usr/bin/python3

import sys
from importlib.metadata import version

from privbroker.window import main

if __name__ == "__main__":
    sys.exit(main(version("privbroker")))
