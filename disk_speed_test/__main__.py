import sys

from disk_speed_test.cli import main

sys.exit(main())
