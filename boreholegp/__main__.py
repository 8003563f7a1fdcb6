import sys

from boreholegp.app.cli import main

if __name__ == "__main__":
    sys.exit(main())
