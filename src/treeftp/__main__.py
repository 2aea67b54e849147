import sys

from treeftp.main import main

sys.exit(main())
