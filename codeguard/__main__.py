import sys

from codeguard.cli import main

sys.exit(main())
