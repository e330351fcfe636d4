import sys

from plz_show.cli import main

sys.exit(main())
