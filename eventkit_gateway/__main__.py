import sys

from eventkit_gateway.cli import main

sys.exit(main())
