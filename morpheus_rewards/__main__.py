import sys

from morpheus_rewards.cli import main

sys.exit(main())
