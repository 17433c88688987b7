import sys

from dealfinder.main import main

sys.exit(main())
