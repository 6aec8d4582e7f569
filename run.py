"""Run the updater in the foreground with console logging."""

import sys

from updaterd.console import main

if __name__ == "__main__":
    sys.exit(main(["run", "--console"]))
