import sys

from motionfleet.service import main

sys.exit(main())
