import sys

from tmdscodec.cli import main

sys.exit(main())
