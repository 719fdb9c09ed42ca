import sys

from regular.main import main

sys.exit(main())
