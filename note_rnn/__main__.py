"""Run with: python -m note_rnn --train training.csv --test test.csv"""

import sys

from note_rnn.app.cli import main

sys.exit(main())
