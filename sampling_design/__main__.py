import sys

from sampling_design.cli import main

sys.exit(main())
