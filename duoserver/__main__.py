import sys

from duoserver.main import main

if __name__ == "__main__":
    sys.exit(main())
