import sys

from dupfinder.cli import main

sys.exit(main())
