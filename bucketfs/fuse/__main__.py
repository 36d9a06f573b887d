import sys

from .fuse_mount import main

sys.exit(main())
