import sys

from promvec.main import main

sys.exit(main())
