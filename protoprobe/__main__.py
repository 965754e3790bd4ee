import sys

from protoprobe.cli import main

sys.exit(main())
