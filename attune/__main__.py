import sys

from attune.main import main

sys.exit(main())
