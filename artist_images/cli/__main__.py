"""Allow ``python -m artist_images.cli`` execution."""

import sys

from artist_images.cli.commands import main

sys.exit(main())
