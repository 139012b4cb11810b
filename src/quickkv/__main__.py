"""Allow ``python -m quickkv``."""

import sys

from quickkv.adapters.inbound.cli import main

sys.exit(main())
