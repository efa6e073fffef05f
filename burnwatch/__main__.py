import sys

from burnwatch.runner import main

sys.exit(main())
