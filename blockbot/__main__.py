"""Allow ``python -m blockbot``."""

import sys

from blockbot.main import main

if __name__ == "__main__":
    sys.exit(main())
