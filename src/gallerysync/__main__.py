"""Allow ``python -m gallerysync``."""

import sys

from .cli import main

sys.exit(main())
