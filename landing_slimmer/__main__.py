import sys

from landing_slimmer.cli import main

sys.exit(main())
