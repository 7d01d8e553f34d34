import sys

from pvm.main import main

sys.exit(main())
