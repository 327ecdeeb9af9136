import sys

from midisynth.cli import main

sys.exit(main())
